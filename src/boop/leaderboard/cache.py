"""Short-lived Redis cache for ranked leaderboard lists.

Only read paths go through the cache. A missing or failing Redis degrades
to a cache miss.
"""

from __future__ import annotations

import json
from typing import Any

import structlog

logger = structlog.get_logger()

LEADERBOARD_CACHE_KEY = "leaderboard:{mode}:{scope}"


class LeaderboardCache:
    """Ranked rows per (mode, scope) with a TTL."""

    def __init__(self, redis: Any | None, ttl_seconds: int) -> None:
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key(mode: str, only_stakers: bool) -> str:
        return LEADERBOARD_CACHE_KEY.format(mode=mode, scope="stakers" if only_stakers else "all")

    async def get(self, mode: str, only_stakers: bool) -> list[dict[str, Any]] | None:
        if self.redis is None or self.ttl_seconds <= 0:
            return None
        try:
            cached = await self.redis.get(self.key(mode, only_stakers))
        except Exception:
            logger.warning("leaderboard_cache_read_failed", mode=mode, exc_info=True)
            return None
        if not cached:
            return None
        return json.loads(cached)

    async def set(self, mode: str, only_stakers: bool, rows: list[dict[str, Any]]) -> None:
        if self.redis is None or self.ttl_seconds <= 0:
            return
        try:
            await self.redis.setex(self.key(mode, only_stakers), self.ttl_seconds, json.dumps(rows))
        except Exception:
            logger.warning("leaderboard_cache_write_failed", mode=mode, exc_info=True)
