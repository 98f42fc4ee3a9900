"""Async SQLAlchemy engine and session management."""

from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

# Alembic head this code was written against
SCHEMA_REVISION = "002_missions"

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


async def init_db(url: str) -> None:
    """Initialize the database engine and session factory."""
    global _engine, _session_factory  # noqa: PLW0603
    if url.startswith("sqlite"):
        # Single shared connection so in-memory databases survive across sessions
        _engine = create_async_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=False,
        )
    else:
        _engine = create_async_engine(
            url,
            pool_size=20,
            max_overflow=10,
            pool_pre_ping=True,
            echo=False,
            connect_args={"statement_cache_size": 0},
        )
    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def close_db() -> None:
    """Dispose of the database engine."""
    global _engine, _session_factory  # noqa: PLW0603
    if _engine:
        await _engine.dispose()
        _engine = None
        _session_factory = None


def get_engine() -> AsyncEngine:
    """Get the async engine instance."""
    if _engine is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    return _session_factory


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session (FastAPI dependency)."""
    async with get_session_factory()() as session:
        yield session


async def verify_schema_revision(expected: str = SCHEMA_REVISION) -> None:
    """Refuse to run against a schema this code does not know.

    Raises RuntimeError when alembic_version is missing or differs.
    """
    try:
        async with get_engine().connect() as conn:
            result = await conn.execute(text("SELECT version_num FROM alembic_version"))
            revisions = {row[0] for row in result}
    except SQLAlchemyError as e:
        msg = f"Schema version check failed: {e}"
        raise RuntimeError(msg) from e

    if revisions != {expected}:
        msg = f"Schema revision mismatch: database has {sorted(revisions)}, expected {expected}"
        raise RuntimeError(msg)
