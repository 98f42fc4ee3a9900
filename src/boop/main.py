"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from boop.config import get_settings
from boop.database import close_db, init_db, verify_schema_revision
from boop.gamification.router import router as gamification_router
from boop.health.router import router as health_router
from boop.leaderboard.router import router as leaderboard_router
from boop.middleware import setup_middleware
from boop.perks.router import router as perks_router
from boop.redis_client import close_redis, init_redis
from boop.staking.router import router as staking_router
from boop.users.router import router as users_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    if settings.check_schema_version:
        await verify_schema_revision()
    await init_redis(settings.redis_url)
    logger.info("BOOP staking API started (%s)", settings.environment)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="BOOP Staking API",
        description="Gamified staking rewards: APR curve, bonuses, claims and leaderboard",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(staking_router)
    app.include_router(perks_router)
    app.include_router(gamification_router)
    app.include_router(leaderboard_router)

    return app


app = create_app()
