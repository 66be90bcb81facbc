"""Shared test fixtures.

Tests run against in-memory SQLite (schema from the ORM metadata) with
Redis left uninitialized, so no external services are needed.
"""

from __future__ import annotations

import os
import time
from collections.abc import AsyncGenerator, Callable
from typing import Any

# Settings are cached on first use; configure before any app import.
os.environ["TRADEMIND_IDENTITY_VERIFICATION_KEY"] = "test-identity-signing-key-0123456789abcdef"
os.environ["TRADEMIND_IDENTITY_ALGORITHM"] = "HS256"
os.environ["TRADEMIND_IDENTITY_ISSUER"] = "privy.io"
os.environ["TRADEMIND_IDENTITY_AUDIENCE"] = ""
os.environ["TRADEMIND_CRON_SECRET"] = "test-cron-secret"
os.environ["TRADEMIND_LOG_FORMAT"] = "console"
os.environ["TRADEMIND_LEADERBOARD_CACHE_TTL_SECONDS"] = "0"

import jwt  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from trademind.config import get_settings  # noqa: E402

get_settings.cache_clear()

from trademind.database import get_session  # noqa: E402
from trademind.db import models  # noqa: E402, F401
from trademind.db.base import Base  # noqa: E402
from trademind.main import create_app  # noqa: E402

CRON_SECRET = "test-cron-secret"


def make_token(user_id: str | None = "did:privy:alice123", **claims: Any) -> str:  # noqa: ANN401
    """Sign an identity-provider style session token for tests."""
    settings = get_settings()
    payload: dict[str, Any] = {"iss": settings.identity_issuer, "exp": int(time.time()) + 3600}
    if user_id is not None:
        payload["sub"] = user_id
    payload.update(claims)
    return jwt.encode(payload, settings.identity_verification_key, algorithm=settings.identity_algorithm)


def auth_headers(user_id: str = "did:privy:alice123") -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database per test."""
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for setup and assertions."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app, sessions bound to the test database."""
    app = create_app()

    async def _override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _override_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def token_factory() -> Callable[..., str]:
    return make_token


@pytest.fixture
def headers_for() -> Callable[[str], dict[str, str]]:
    """Build Authorization headers for a given user id."""
    return auth_headers
