from __future__ import annotations

from app.db.models import User, UserRole
from app.modules.auth.types import (
    ActiveTwoFactor,
    NoTwoFactor,
    PasswordResetGrant,
    PendingTwoFactor,
    TwoFactorState,
    UserAccount,
)


def to_account(row: User) -> UserAccount:
    return UserAccount(
        id=row.id,
        login_id=row.login_id,
        display_name=row.display_name,
        password_hash=row.password_hash,
        role=row.role if isinstance(row.role, UserRole) else UserRole(row.role),
        created_at=row.created_at,
        password_reset=_password_reset(row),
        two_factor=two_factor_state(row.totp_secret, row.totp_verified),
    )


def two_factor_state(secret: str | None, verified: bool | None) -> TwoFactorState:
    if secret is None:
        return NoTwoFactor()
    if verified:
        return ActiveTwoFactor(secret=secret)
    return PendingTwoFactor(secret=secret)


def _password_reset(row: User) -> PasswordResetGrant | None:
    if row.reset_token is None or row.reset_token_expires_at is None:
        return None
    return PasswordResetGrant(token=row.reset_token, expires_at=row.reset_token_expires_at)
