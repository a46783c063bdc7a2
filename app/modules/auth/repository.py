from __future__ import annotations

from datetime import datetime

from sqlalchemy import exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import User


class UsersRepository:
    """Credential store backed by the ``users`` table.

    Every mutation is a single conditional ``UPDATE`` so concurrent requests
    against one account cannot interleave a read-modify-write.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: str) -> User | None:
        return await self._first(select(User).where(User.id == user_id))

    async def get_by_login_id(self, login_id: str) -> User | None:
        return await self._first(select(User).where(User.login_id == login_id))

    async def get_by_reset_token(self, token: str) -> User | None:
        return await self._first(select(User).where(User.reset_token == token))

    async def exists_by_login_id(self, login_id: str) -> bool:
        result = await self._session.execute(select(exists().where(User.login_id == login_id)))
        return bool(result.scalar())

    async def create(self, user: User) -> User:
        self._session.add(user)
        await self._session.commit()
        await self._session.refresh(user)
        return user

    async def set_totp_secret(self, user_id: str, secret: str | None) -> bool:
        return await self._update_returning(
            update(User).where(User.id == user_id).values(totp_secret=secret, totp_verified=False)
        )

    async def try_mark_totp_verified(self, user_id: str, secret: str) -> bool:
        return await self._update_returning(
            update(User)
            .where(User.id == user_id)
            .where(User.totp_secret == secret)
            .where(User.totp_verified.is_(False))
            .values(totp_verified=True)
        )

    async def set_reset_token(self, user_id: str, token: str, expires_at: datetime) -> bool:
        return await self._update_returning(
            update(User).where(User.id == user_id).values(reset_token=token, reset_token_expires_at=expires_at)
        )

    async def try_consume_reset_token(self, user_id: str, token: str, password_hash: str) -> bool:
        return await self._update_returning(
            update(User)
            .where(User.id == user_id)
            .where(User.reset_token == token)
            .values(password_hash=password_hash, reset_token=None, reset_token_expires_at=None)
        )

    async def _first(self, stmt) -> User | None:
        result = await self._session.execute(stmt.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def _update_returning(self, stmt) -> bool:
        result = await self._session.execute(stmt.returning(User.id))
        updated = result.scalar_one_or_none() is not None
        await self._session.commit()
        return updated
