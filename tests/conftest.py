import os

# Settings are read at import time; pin test values before importing the app.
os.environ.setdefault("TELEMETRY_ENABLED", "false")
os.environ.setdefault("SESSION_SECRET", "test-session-secret-0123456789abcdef-0123456789")
os.environ.setdefault("MIRROR_BASE_URL", "")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

import rentdesk.models  # noqa: F401  # registers every table on Base.metadata
from rentdesk.core.db import build_sessionmaker, get_db
from rentdesk.main import app
from rentdesk.models.base import Base
from rentdesk.services.auth import get_credential_store
from rentdesk.services.mirror import WebhookMirror, get_mirror

from fixtures_seed import credential_store, other_owner, owner  # noqa: F401


def _test_db_url() -> str:
    # In-memory SQLite unless a real database is supplied
    return os.getenv("DATABASE_URL_TEST", "sqlite+aiosqlite://")


@pytest_asyncio.fixture
async def async_engine():
    url = _test_db_url()
    if url.startswith("sqlite"):
        engine = create_async_engine(url, poolclass=StaticPool, connect_args={"check_same_thread": False})
    else:
        engine = create_async_engine(url, pool_pre_ping=True)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(async_engine):
    return build_sessionmaker(async_engine)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def mirror():
    """Disabled by default; tests that care about the webhook swap in their own."""
    return WebhookMirror(base_url="")


@pytest_asyncio.fixture
async def client(session_factory, mirror, credential_store):
    """
    HTTP client against the app with the test DB, mirror and credentials
    injected through dependency overrides. Each request gets its own session.
    """
    async def _override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_mirror] = lambda: mirror
    app.dependency_overrides[get_credential_store] = lambda: credential_store

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    await mirror.aclose()


async def login_headers(client: httpx.AsyncClient, username: str, password: str) -> dict[str, str]:
    r = await client.post("/v1/auth/login", json={"username": username, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest_asyncio.fixture
async def owner_headers(client, owner):
    return await login_headers(client, owner["username"], owner["password"])


@pytest_asyncio.fixture
async def other_headers(client, other_owner):
    return await login_headers(client, other_owner["username"], other_owner["password"])
