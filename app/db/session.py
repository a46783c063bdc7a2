from __future__ import annotations

from pathlib import Path
from typing import Any, AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config.settings import get_settings

_SQLITE_PREFIX = "sqlite+aiosqlite:///"

DATABASE_URL = get_settings().database_url


def _engine_options(url: str) -> dict[str, Any]:
    if url.startswith(_SQLITE_PREFIX):
        # Concurrent writers wait on the file lock instead of failing right away.
        return {"connect_args": {"timeout": 30}}
    return {"pool_pre_ping": True}


engine = create_async_engine(DATABASE_URL, echo=False, **_engine_options(DATABASE_URL))
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


def _sqlite_file(url: str) -> Path | None:
    if not url.startswith(_SQLITE_PREFIX):
        return None
    location = url[len(_SQLITE_PREFIX) :]
    if not location or location == ":memory:":
        return None
    return Path(location).expanduser()


async def get_session() -> AsyncIterator[AsyncSession]:
    """One session per request; anything left uncommitted is rolled back."""
    async with SessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            if session.in_transaction():
                await session.rollback()


async def init_db() -> None:
    from app.db.models import Base

    db_file = _sqlite_file(DATABASE_URL)
    if db_file is not None:
        db_file.parent.mkdir(parents=True, exist_ok=True)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
