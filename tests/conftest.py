"""Shared test fixtures.

Tests run against an in-memory SQLite database and without Redis, so the
suite needs no external services.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from unittest.mock import AsyncMock

os.environ.setdefault("BOOP_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BOOP_CHECK_SCHEMA_VERSION", "false")
os.environ.setdefault("BOOP_LOG_FORMAT", "console")
os.environ.setdefault("BOOP_ENVIRONMENT", "test")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from boop.config import Settings, get_settings  # noqa: E402
from boop.database import close_db, get_engine, get_session_factory, init_db  # noqa: E402
from boop.db.base import Base  # noqa: E402
from boop.db import models  # noqa: E402, F401

get_settings.cache_clear()

T0 = datetime(2026, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def t0() -> datetime:
    """A fixed mid-month instant used as 'now' by service tests."""
    return T0


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh in-memory schema per test."""
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session."""
    async with get_session_factory()() as session:
        yield session


@pytest.fixture
def redis_mock() -> AsyncMock:
    """Stands in for the Redis client where only publish/get/setex are used."""
    mock = AsyncMock()
    mock.get.return_value = None
    return mock


@pytest_asyncio.fixture
async def client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client. Redis stays uninitialized, so rate limiting,
    caching and events are all bypassed."""
    from boop.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
