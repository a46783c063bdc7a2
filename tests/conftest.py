from __future__ import annotations

import os
import tempfile
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

TEST_DB_DIR = Path(tempfile.mkdtemp(prefix="campus-eats-tests-"))
TEST_DB_PATH = TEST_DB_DIR / "campus-eats.db"

TEST_JWT_SECRET = "test-signing-key-that-is-long-enough-for-hs256"
TEST_STAFF_REGISTRATION_KEY = "staff-key-for-tests"

os.environ["CAMPUS_EATS_DATABASE_URL"] = os.environ.get(
    "CAMPUS_EATS_TEST_DATABASE_URL", f"sqlite+aiosqlite:///{TEST_DB_PATH}"
)
os.environ["CAMPUS_EATS_JWT_SECRET"] = TEST_JWT_SECRET
os.environ["CAMPUS_EATS_STAFF_REGISTRATION_KEY"] = TEST_STAFF_REGISTRATION_KEY

from app.core.auth.rate_limit import get_login_rate_limiter, get_totp_rate_limiter  # noqa: E402
from app.db.models import Base  # noqa: E402
from app.db.session import engine  # noqa: E402
from app.main import create_app  # noqa: E402


@pytest_asyncio.fixture
async def app_instance():
    app = create_app()
    async with engine.begin() as conn:

        def _reset(sync_conn):
            Base.metadata.drop_all(sync_conn)
            Base.metadata.create_all(sync_conn)

        await conn.run_sync(_reset)
    return app


@pytest_asyncio.fixture
async def async_client(app_instance):
    async with app_instance.router.lifespan_context(app_instance):
        transport = ASGITransport(app=app_instance)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client


@pytest_asyncio.fixture
async def db_setup():
    async with engine.begin() as conn:

        def _reset(sync_conn):
            Base.metadata.drop_all(sync_conn)
            Base.metadata.create_all(sync_conn)

        await conn.run_sync(_reset)
    yield True
    await engine.dispose()


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    from app.core.config.settings import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _reset_rate_limiters():
    limiters = (get_login_rate_limiter(), get_totp_rate_limiter())
    for limiter in limiters:
        limiter.clear()
    yield
    for limiter in limiters:
        limiter.clear()
