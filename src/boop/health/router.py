"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from boop.config import get_settings
from boop.database import SCHEMA_REVISION, get_session
from boop.redis_client import get_redis_optional

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe: returns 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe: checks DB and Redis connectivity.

    Redis is optional, so a missing pool reports "disabled" without degrading.
    """
    checks: dict[str, object] = {}

    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        checks["database"] = "ok"
    except Exception as exc:
        checks["database"] = f"error: {exc}"

    redis = get_redis_optional()
    if redis is None:
        checks["redis"] = "disabled"
    else:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except Exception as exc:
            checks["redis"] = f"error: {exc}"

    all_ok = all(v in ("ok", "disabled") for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    """Return API version, environment and expected schema revision."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
        "schema": SCHEMA_REVISION,
    }
