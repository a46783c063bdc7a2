from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth.dependencies import get_token_issuer
from app.core.auth.tokens import TokenIssuer
from app.core.config.settings import get_settings
from app.db.session import get_session
from app.modules.auth.notifier import LoggingResetTokenNotifier, ResetTokenNotifier
from app.modules.auth.repository import UsersRepository
from app.modules.auth.service import AuthService


@dataclass(slots=True)
class AuthContext:
    session: AsyncSession
    repository: UsersRepository
    service: AuthService


def get_reset_token_notifier() -> ResetTokenNotifier:
    settings = get_settings()
    return LoggingResetTokenNotifier(ttl_seconds=settings.password_reset_ttl_seconds)


def get_auth_context(
    session: AsyncSession = Depends(get_session),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
    notifier: ResetTokenNotifier = Depends(get_reset_token_notifier),
) -> AuthContext:
    settings = get_settings()
    repository = UsersRepository(session)
    service = AuthService(
        repository,
        token_issuer,
        notifier,
        staff_registration_key=settings.staff_registration_key,
        issuer_name=settings.app_name,
        reset_token_ttl_seconds=settings.password_reset_ttl_seconds,
        password_min_length=settings.password_min_length,
        staff_password_min_length=settings.staff_password_min_length,
    )
    return AuthContext(session=session, repository=repository, service=service)
