from __future__ import annotations

import hmac
import logging
import re
import secrets
import uuid
from datetime import datetime, timedelta
from typing import Protocol

from sqlalchemy.exc import IntegrityError

from app.core.auth.passwords import check_password_async, hash_password, hash_password_async
from app.core.auth.tokens import TokenIssuer
from app.core.auth.totp import build_otpauth_uri, generate_totp_secret, verify_totp_code
from app.core.exceptions import (
    AccountValidationError,
    DuplicateIdentityError,
    ExpiredResetTokenError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidResetTokenError,
    InvalidStateError,
    InvalidTotpCodeError,
    NotFoundError,
)
from app.core.utils.time import utcnow
from app.db.models import User, UserRole
from app.modules.auth.mappers import to_account
from app.modules.auth.notifier import ResetTokenNotifier
from app.modules.auth.types import (
    ActiveTwoFactor,
    AuthResult,
    LoginChallenge,
    LoginCompleted,
    LoginOutcome,
    PendingTwoFactor,
    TotpSetupData,
    UserAccount,
)

logger = logging.getLogger(__name__)

_LOGIN_ID_PATTERN = re.compile(r"[0-9]{5,10}")
# bcrypt only hashes the first 72 bytes.
_MAX_PASSWORD_BYTES = 72
DEFAULT_RESET_TOKEN_TTL_SECONDS = 15 * 60
_UNKNOWN_ACCOUNT_HASH = hash_password(secrets.token_urlsafe(16))

LOGIN_CHALLENGE_MESSAGE = "Enter the 6-digit code from your authenticator app"
TOTP_SETUP_MESSAGE = "Scan the QR code with your authenticator app, then confirm with your first code"
TOTP_DISABLED_MESSAGE = "2FA has been disabled"
FORGOT_PASSWORD_MESSAGE = "If that login ID is registered, a reset token has been sent"
PASSWORD_RESET_MESSAGE = "Password reset successfully - you can now log in"


class UsersRepositoryProtocol(Protocol):
    async def get_by_id(self, user_id: str) -> User | None: ...

    async def get_by_login_id(self, login_id: str) -> User | None: ...

    async def get_by_reset_token(self, token: str) -> User | None: ...

    async def exists_by_login_id(self, login_id: str) -> bool: ...

    async def create(self, user: User) -> User: ...

    async def set_totp_secret(self, user_id: str, secret: str | None) -> bool: ...

    async def try_mark_totp_verified(self, user_id: str, secret: str) -> bool: ...

    async def set_reset_token(self, user_id: str, token: str, expires_at: datetime) -> bool: ...

    async def try_consume_reset_token(self, user_id: str, token: str, password_hash: str) -> bool: ...


class AuthService:
    def __init__(
        self,
        repository: UsersRepositoryProtocol,
        token_issuer: TokenIssuer,
        notifier: ResetTokenNotifier,
        *,
        staff_registration_key: str,
        issuer_name: str,
        reset_token_ttl_seconds: int = DEFAULT_RESET_TOKEN_TTL_SECONDS,
        password_min_length: int = 6,
        staff_password_min_length: int = 8,
    ) -> None:
        self._repository = repository
        self._tokens = token_issuer
        self._notifier = notifier
        self._staff_registration_key = staff_registration_key
        self._issuer_name = issuer_name
        self._reset_token_ttl = timedelta(seconds=reset_token_ttl_seconds)
        self._password_min_length = password_min_length
        self._staff_password_min_length = staff_password_min_length

    # --- Registration ---

    async def register(self, login_id: str, name: str, password: str) -> AuthResult:
        return await self._register(
            login_id,
            name,
            password,
            role=UserRole.STUDENT,
            min_password_length=self._password_min_length,
        )

    async def register_staff(self, login_id: str, name: str, password: str, supplied_key: str) -> AuthResult:
        if not hmac.compare_digest(
            supplied_key.encode("utf-8"),
            self._staff_registration_key.encode("utf-8"),
        ):
            logger.warning("Rejected staff registration with invalid key login_id=%s", login_id)
            raise ForbiddenError()
        return await self._register(
            login_id,
            name,
            password,
            role=UserRole.STAFF,
            min_password_length=self._staff_password_min_length,
        )

    # --- Login ---

    async def login(self, login_id: str, password: str) -> LoginOutcome:
        row = await self._repository.get_by_login_id(login_id.strip())
        if row is None:
            # Unknown ids pay for one bcrypt check too.
            await check_password_async(password, _UNKNOWN_ACCOUNT_HASH)
            logger.warning("Login failed login_id=%s", login_id)
            raise InvalidCredentialsError()
        if not await check_password_async(password, row.password_hash):
            logger.warning("Login failed login_id=%s", login_id)
            raise InvalidCredentialsError()
        account = to_account(row)
        if account.two_factor_active:
            logger.info("Login requires 2FA login_id=%s", account.login_id)
            return LoginChallenge(
                pending_token=self._tokens.issue_pending_2fa(account),
                message=LOGIN_CHALLENGE_MESSAGE,
            )
        logger.info("Login completed login_id=%s", account.login_id)
        return LoginCompleted(auth=self._auth_result(account))

    async def verify_totp(self, user_id: str, code: int | str) -> AuthResult:
        row = await self._repository.get_by_id(user_id)
        if row is None:
            raise InvalidCredentialsError()
        account = to_account(row)
        if not isinstance(account.two_factor, ActiveTwoFactor):
            raise InvalidStateError("2FA is not enabled on this account")
        if not verify_totp_code(account.two_factor.secret, code).is_valid:
            logger.info("2FA verification failed login_id=%s", account.login_id)
            raise InvalidTotpCodeError()
        return self._auth_result(account)

    # --- Two-factor enrollment ---

    async def setup_totp(self, user_id: str) -> TotpSetupData:
        account = await self._require_account(user_id)
        secret = generate_totp_secret()
        otpauth_uri = build_otpauth_uri(secret, account_name=account.login_id, issuer=self._issuer_name)
        if not await self._repository.set_totp_secret(account.id, secret):
            raise NotFoundError("Account not found")
        logger.info("2FA enrollment started login_id=%s", account.login_id)
        return TotpSetupData(secret=secret, otpauth_uri=otpauth_uri, message=TOTP_SETUP_MESSAGE)

    async def confirm_totp_setup(self, user_id: str, code: int | str) -> AuthResult:
        account = await self._require_account(user_id)
        if not isinstance(account.two_factor, PendingTwoFactor):
            raise InvalidStateError("No pending 2FA setup found - start setup first")
        secret = account.two_factor.secret
        if not verify_totp_code(secret, code).is_valid:
            raise InvalidTotpCodeError()
        if not await self._repository.try_mark_totp_verified(account.id, secret):
            raise InvalidStateError("No pending 2FA setup found - start setup first")
        logger.info("2FA enabled login_id=%s", account.login_id)
        return self._auth_result(account)

    async def disable_totp(self, user_id: str) -> str:
        account = await self._require_account(user_id)
        if not await self._repository.set_totp_secret(account.id, None):
            raise NotFoundError("Account not found")
        logger.info("2FA disabled login_id=%s", account.login_id)
        return TOTP_DISABLED_MESSAGE

    # --- Password reset ---

    async def forgot_password(self, login_id: str) -> str:
        row = await self._repository.get_by_login_id(login_id.strip())
        if row is not None:
            token = secrets.token_urlsafe(32)
            expires_at = utcnow() + self._reset_token_ttl
            if await self._repository.set_reset_token(row.id, token, expires_at):
                logger.info("Password reset requested login_id=%s", row.login_id)
                await self._notifier.deliver(row.login_id, token)
        return FORGOT_PASSWORD_MESSAGE

    async def reset_password(self, token: str, new_password: str) -> str:
        _validate_password(new_password, self._password_min_length)
        row = await self._repository.get_by_reset_token(token)
        if row is None:
            raise InvalidResetTokenError()
        account = to_account(row)
        if account.password_reset is None or account.password_reset.is_expired(utcnow()):
            raise ExpiredResetTokenError()
        password_hash = await hash_password_async(new_password)
        if not await self._repository.try_consume_reset_token(account.id, token, password_hash):
            raise InvalidResetTokenError()
        logger.info("Password reset completed login_id=%s", account.login_id)
        return PASSWORD_RESET_MESSAGE

    # --- Queries ---

    async def get_account(self, user_id: str) -> UserAccount:
        return await self._require_account(user_id)

    async def _register(
        self,
        login_id: str,
        name: str,
        password: str,
        *,
        role: UserRole,
        min_password_length: int,
    ) -> AuthResult:
        normalized_login_id = _normalize_login_id(login_id)
        display_name = _normalize_name(name)
        _validate_password(password, min_password_length)
        if await self._repository.exists_by_login_id(normalized_login_id):
            raise DuplicateIdentityError(f"Login ID {normalized_login_id} is already registered")

        user = User(
            id=str(uuid.uuid4()),
            login_id=normalized_login_id,
            display_name=display_name,
            password_hash=await hash_password_async(password),
            role=role,
            created_at=utcnow(),
            totp_verified=False,
        )
        try:
            created = await self._repository.create(user)
        except IntegrityError as exc:
            # Concurrent registration of the same login id.
            raise DuplicateIdentityError(f"Login ID {normalized_login_id} is already registered") from exc
        account = to_account(created)
        logger.info("Registered account login_id=%s role=%s", account.login_id, account.role.value)
        return self._auth_result(account)

    async def _require_account(self, user_id: str) -> UserAccount:
        row = await self._repository.get_by_id(user_id)
        if row is None:
            raise NotFoundError("Account not found")
        return to_account(row)

    def _auth_result(self, account: UserAccount) -> AuthResult:
        return AuthResult(
            token=self._tokens.issue_full(account),
            login_id=account.login_id,
            name=account.display_name,
            role=account.role.value,
        )


def _normalize_login_id(login_id: str) -> str:
    value = login_id.strip()
    if not value:
        raise AccountValidationError("Login ID is required")
    if not _LOGIN_ID_PATTERN.fullmatch(value):
        raise AccountValidationError("Login ID must be 5-10 digits")
    return value


def _normalize_name(name: str) -> str:
    value = name.strip()
    if not value:
        raise AccountValidationError("Name is required")
    return value


def _validate_password(password: str, min_length: int) -> None:
    if len(password) < min_length:
        raise AccountValidationError(f"Password must be at least {min_length} characters")
    if len(password.encode("utf-8")) > _MAX_PASSWORD_BYTES:
        raise AccountValidationError(f"Password must be at most {_MAX_PASSWORD_BYTES} bytes")
