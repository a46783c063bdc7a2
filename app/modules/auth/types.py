from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TypeAlias

from app.db.models import UserRole


@dataclass(frozen=True, slots=True)
class NoTwoFactor:
    pass


@dataclass(frozen=True, slots=True)
class PendingTwoFactor:
    secret: str


@dataclass(frozen=True, slots=True)
class ActiveTwoFactor:
    secret: str


TwoFactorState: TypeAlias = NoTwoFactor | PendingTwoFactor | ActiveTwoFactor


@dataclass(frozen=True, slots=True)
class PasswordResetGrant:
    token: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True, slots=True)
class UserAccount:
    id: str
    login_id: str
    display_name: str
    password_hash: str
    role: UserRole
    created_at: datetime
    password_reset: PasswordResetGrant | None
    two_factor: TwoFactorState

    @property
    def two_factor_active(self) -> bool:
        return isinstance(self.two_factor, ActiveTwoFactor)

    @property
    def two_factor_pending(self) -> bool:
        return isinstance(self.two_factor, PendingTwoFactor)


@dataclass(frozen=True, slots=True)
class AuthResult:
    token: str
    login_id: str
    name: str
    role: str


@dataclass(frozen=True, slots=True)
class LoginCompleted:
    auth: AuthResult


@dataclass(frozen=True, slots=True)
class LoginChallenge:
    pending_token: str
    message: str


LoginOutcome: TypeAlias = LoginCompleted | LoginChallenge


@dataclass(frozen=True, slots=True)
class TotpSetupData:
    secret: str
    otpauth_uri: str
    message: str
