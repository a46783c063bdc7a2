from __future__ import annotations

import asyncio

import pytest

from app.core.auth.passwords import check_password, hash_password
from app.core.auth.tokens import TokenIssuer
from app.core.exceptions import InvalidResetTokenError
from app.core.utils.time import utcnow
from app.db.models import User, UserRole
from app.db.session import SessionLocal
from app.modules.auth.repository import UsersRepository
from app.modules.auth.service import PASSWORD_RESET_MESSAGE, AuthService

pytestmark = pytest.mark.integration

_SIGNING_KEY = "repository-test-signing-key-of-sufficient-length"


class _CapturingNotifier:
    def __init__(self) -> None:
        self.tokens: list[str] = []

    async def deliver(self, recipient_id: str, token: str) -> None:
        self.tokens.append(token)


def _service(session, notifier: _CapturingNotifier | None = None) -> AuthService:
    return AuthService(
        UsersRepository(session),
        TokenIssuer(_SIGNING_KEY, full_ttl_seconds=3600),
        notifier or _CapturingNotifier(),
        staff_registration_key="staff-key",
        issuer_name="Campus Delivery",
    )


async def _create_user(login_id: str = "12345678", password: str = "secret1") -> str:
    async with SessionLocal() as session:
        user = await UsersRepository(session).create(
            User(
                id=f"user-{login_id}",
                login_id=login_id,
                display_name="Alice Student",
                password_hash=hash_password(password),
                role=UserRole.STUDENT,
                created_at=utcnow(),
                totp_verified=False,
            )
        )
        return user.id


@pytest.mark.asyncio
async def test_reset_token_can_only_be_consumed_once(db_setup):
    user_id = await _create_user()
    first_hash = hash_password("first-pass")
    second_hash = hash_password("second-pass")

    async with SessionLocal() as session:
        repository = UsersRepository(session)
        expires_at = utcnow().replace(microsecond=0)
        assert await repository.set_reset_token(user_id, "reset-token", expires_at) is True

        assert await repository.try_consume_reset_token(user_id, "reset-token", first_hash) is True
        assert await repository.try_consume_reset_token(user_id, "reset-token", second_hash) is False

    async with SessionLocal() as session:
        stored = await UsersRepository(session).get_by_id(user_id)
        assert stored is not None
        assert stored.password_hash == first_hash
        assert stored.reset_token is None
        assert stored.reset_token_expires_at is None


@pytest.mark.asyncio
async def test_consume_with_other_token_leaves_account_untouched(db_setup):
    user_id = await _create_user()

    async with SessionLocal() as session:
        repository = UsersRepository(session)
        await repository.set_reset_token(user_id, "current-token", utcnow())
        assert await repository.try_consume_reset_token(user_id, "stale-token", hash_password("other")) is False

        stored = await repository.get_by_id(user_id)
        assert stored is not None
        assert stored.reset_token == "current-token"
        assert check_password("secret1", stored.password_hash) is True


@pytest.mark.asyncio
async def test_confirm_with_replaced_pending_secret_is_refused(db_setup):
    user_id = await _create_user()

    async with SessionLocal() as session:
        service = _service(session)
        old_secret = (await service.setup_totp(user_id)).secret
        new_secret = (await service.setup_totp(user_id)).secret
        assert old_secret != new_secret

        repository = UsersRepository(session)
        assert await repository.try_mark_totp_verified(user_id, old_secret) is False

        stored = await repository.get_by_id(user_id)
        assert stored is not None
        assert stored.totp_secret == new_secret
        assert stored.totp_verified is False

        assert await repository.try_mark_totp_verified(user_id, new_secret) is True
        assert await repository.try_mark_totp_verified(user_id, new_secret) is False


@pytest.mark.asyncio
async def test_disable_between_setup_and_confirm_wins(db_setup):
    user_id = await _create_user()

    async with SessionLocal() as session:
        service = _service(session)
        secret = (await service.setup_totp(user_id)).secret
        await service.disable_totp(user_id)

        repository = UsersRepository(session)
        assert await repository.try_mark_totp_verified(user_id, secret) is False
        stored = await repository.get_by_id(user_id)
        assert stored is not None
        assert stored.totp_secret is None
        assert stored.totp_verified is False


@pytest.mark.asyncio
async def test_concurrent_resets_with_one_token_succeed_once(db_setup):
    user_id = await _create_user()
    notifier = _CapturingNotifier()
    async with SessionLocal() as session:
        await _service(session, notifier).forgot_password("12345678")
    (token,) = notifier.tokens

    async def _reset(new_password: str) -> str:
        async with SessionLocal() as session:
            return await _service(session).reset_password(token, new_password)

    results = await asyncio.gather(_reset("first-pass"), _reset("second-pass"), return_exceptions=True)

    successes = [result for result in results if result == PASSWORD_RESET_MESSAGE]
    failures = [result for result in results if isinstance(result, InvalidResetTokenError)]
    assert len(successes) == 1
    assert len(failures) == 1

    winner = "first-pass" if results[0] == PASSWORD_RESET_MESSAGE else "second-pass"
    loser = "second-pass" if winner == "first-pass" else "first-pass"
    async with SessionLocal() as session:
        stored = await UsersRepository(session).get_by_id(user_id)
        assert stored is not None
        assert stored.reset_token is None
        assert check_password(winner, stored.password_hash) is True
        assert check_password(loser, stored.password_hash) is False
