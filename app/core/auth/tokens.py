from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from time import time
from typing import Any, Protocol

import jwt


_ALGORITHM = "HS256"
_MIN_KEY_BYTES = 32
PENDING_2FA_TTL_SECONDS = 5 * 60


class TokenType(str, Enum):
    FULL = "FULL"
    PENDING_2FA = "PENDING_2FA"


class TokenValidationError(ValueError):
    pass


class TokenSubjectProtocol(Protocol):
    id: str
    login_id: str
    role: Any


@dataclass(frozen=True, slots=True)
class TokenClaims:
    subject: str
    login_id: str
    role: str
    token_type: TokenType
    issued_at: int
    expires_at: int


class TokenIssuer:
    """Signs and verifies FULL and PENDING_2FA bearer tokens with one HS256 key."""

    def __init__(
        self,
        secret_key: str | bytes,
        *,
        full_ttl_seconds: int,
        pending_ttl_seconds: int = PENDING_2FA_TTL_SECONDS,
    ) -> None:
        key = secret_key.encode("utf-8") if isinstance(secret_key, str) else bytes(secret_key)
        if len(key) < _MIN_KEY_BYTES:
            raise ValueError(f"Signing key must be at least {_MIN_KEY_BYTES} bytes")
        if full_ttl_seconds <= 0:
            raise ValueError("full_ttl_seconds must be positive")
        if pending_ttl_seconds <= 0:
            raise ValueError("pending_ttl_seconds must be positive")
        self._key = key
        self._full_ttl_seconds = full_ttl_seconds
        self._pending_ttl_seconds = pending_ttl_seconds

    def issue_full(self, account: TokenSubjectProtocol) -> str:
        return self._issue(account, TokenType.FULL, self._full_ttl_seconds)

    def issue_pending_2fa(self, account: TokenSubjectProtocol) -> str:
        return self._issue(account, TokenType.PENDING_2FA, self._pending_ttl_seconds)

    def decode(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self._key,
                algorithms=[_ALGORITHM],
                options={"require": ["sub", "iat", "exp"]},
            )
        except jwt.PyJWTError as exc:
            raise TokenValidationError("Invalid or expired token") from exc
        return _claims_from_payload(payload)

    def is_valid(self, token: str | None) -> bool:
        if not token:
            return False
        try:
            self.decode(token)
        except TokenValidationError:
            return False
        return True

    def is_full_token(self, token: str) -> bool:
        return self._token_type(token) is TokenType.FULL

    def is_pending_2fa_token(self, token: str) -> bool:
        return self._token_type(token) is TokenType.PENDING_2FA

    def extract_subject(self, token: str) -> str:
        return self.decode(token).subject

    def extract_login_id(self, token: str) -> str:
        return self.decode(token).login_id

    def extract_role(self, token: str) -> str:
        return self.decode(token).role

    def _token_type(self, token: str) -> TokenType | None:
        try:
            return self.decode(token).token_type
        except TokenValidationError:
            return None

    def _issue(self, account: TokenSubjectProtocol, token_type: TokenType, ttl_seconds: int) -> str:
        issued_at = int(time())
        role = account.role.value if isinstance(account.role, Enum) else str(account.role)
        payload = {
            "sub": str(account.id),
            "loginId": account.login_id,
            "role": role,
            "type": token_type.value,
            "iat": issued_at,
            "exp": issued_at + ttl_seconds,
        }
        return jwt.encode(payload, self._key, algorithm=_ALGORITHM)


def _claims_from_payload(payload: dict[str, Any]) -> TokenClaims:
    subject = payload.get("sub")
    login_id = payload.get("loginId")
    role = payload.get("role")
    raw_type = payload.get("type")
    if (
        not isinstance(subject, str)
        or not subject
        or not isinstance(login_id, str)
        or not isinstance(role, str)
        or not isinstance(raw_type, str)
    ):
        raise TokenValidationError("Invalid or expired token")
    try:
        token_type = TokenType(raw_type)
    except ValueError as exc:
        raise TokenValidationError("Invalid or expired token") from exc
    return TokenClaims(
        subject=subject,
        login_id=login_id,
        role=role,
        token_type=token_type,
        issued_at=int(payload["iat"]),
        expires_at=int(payload["exp"]),
    )
