from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.auth.tokens import TokenClaims, TokenIssuer, TokenType, TokenValidationError
from app.core.config.settings import get_settings
from app.core.exceptions import AuthenticationRequiredError

_bearer = HTTPBearer(description="Bearer token from login or 2FA verification", auto_error=False)


@dataclass(frozen=True, slots=True)
class AuthPrincipal:
    user_id: str
    login_id: str
    role: str
    token_type: TokenType


def get_token_issuer() -> TokenIssuer:
    settings = get_settings()
    return TokenIssuer(settings.jwt_secret, full_ttl_seconds=settings.jwt_expiration_seconds)


# --- Bearer token gating ---


async def get_principal(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> AuthPrincipal:
    """Any valid bearer token, FULL or PENDING_2FA."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationRequiredError("Missing bearer token in Authorization header")
    try:
        claims = token_issuer.decode(credentials.credentials)
    except TokenValidationError as exc:
        raise AuthenticationRequiredError("Invalid or expired token") from exc
    return _to_principal(claims)


async def require_full_principal(principal: AuthPrincipal = Depends(get_principal)) -> AuthPrincipal:
    if principal.token_type is not TokenType.FULL:
        raise AuthenticationRequiredError("2FA verification is required", code="totp_required")
    return principal


def _to_principal(claims: TokenClaims) -> AuthPrincipal:
    return AuthPrincipal(
        user_id=claims.subject,
        login_id=claims.login_id,
        role=claims.role,
        token_type=claims.token_type,
    )
