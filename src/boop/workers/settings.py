"""arq worker for periodic staking maintenance.

Import path for arq CLI: arq boop.workers.settings.WorkerSettings
"""

from __future__ import annotations

import logging

from arq import cron
from arq.connections import RedisSettings

from boop.config import get_settings
from boop.database import close_db, get_session_factory, init_db
from boop.middleware.logging import setup_logging
from boop.staking.service import sweep_unlocks

logger = logging.getLogger(__name__)

_settings = get_settings()


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize the database engine on worker startup."""
    setup_logging(_settings)
    await init_db(_settings.database_url)
    ctx["session_factory"] = get_session_factory()
    logger.info("Staking worker started")


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    await close_db()
    logger.info("Staking worker shut down")


async def unlock_sweep(ctx: dict) -> int:  # type: ignore[type-arg]
    """Move every position past its unlock time from pending_unstake to unlocked."""
    async with ctx["session_factory"]() as db:
        return await sweep_unlocks(db)


def _sweep_minutes(interval: int) -> set[int]:
    interval = max(1, min(interval, 60))
    return set(range(0, 60, interval))


class WorkerSettings:
    """arq worker settings for the unlock sweep."""

    functions = [unlock_sweep]
    cron_jobs = [
        cron(unlock_sweep, minute=_sweep_minutes(_settings.unlock_sweep_interval_minutes), run_at_startup=True),
    ]
    redis_settings = RedisSettings.from_dsn(_settings.redis_url)
    on_startup = startup
    on_shutdown = shutdown
    max_jobs = 4
    job_timeout = 300
