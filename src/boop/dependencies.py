"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from boop.config import get_settings
from boop.database import get_session as _get_session
from boop.leaderboard.cache import LeaderboardCache
from boop.redis_client import get_redis_optional

get_db = _get_session


async def get_redis_dep() -> AsyncGenerator[object | None, None]:
    """Yield the Redis client, or None when Redis is not initialized."""
    yield get_redis_optional()


async def get_leaderboard_cache() -> AsyncGenerator[LeaderboardCache, None]:
    yield LeaderboardCache(get_redis_optional(), get_settings().leaderboard_cache_ttl_seconds)
