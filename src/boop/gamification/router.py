"""Gamification API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from boop.config import get_settings
from boop.dependencies import get_db
from boop.gamification.level_thresholds import LEVEL_THRESHOLDS, MAX_LEVEL
from boop.gamification.mission_service import list_missions
from boop.gamification.schemas import AllLevelsResponse, LevelEntry, MissionEntry, MissionListResponse

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


@router.get("/levels", response_model=AllLevelsResponse)
async def list_levels():
    """Get all level definitions."""
    levels = []
    previous = 0
    for t in LEVEL_THRESHOLDS:
        levels.append(LevelEntry(
            level=t["level"],
            title=t["title"],
            cumulative=t["cumulative"],
            xp_required=t["cumulative"] - previous,
        ))
        previous = t["cumulative"]
    return AllLevelsResponse(
        levels=levels,
        xp_per_claim=get_settings().xp_per_claim,
        max_level=MAX_LEVEL,
    )


@router.get("/missions", response_model=MissionListResponse)
async def get_missions(
    daily: bool = Query(default=False),
    db: AsyncSession = Depends(get_db),
):
    """Mission catalog, oldest first."""
    missions = await list_missions(db, daily_only=daily)
    return MissionListResponse(
        missions=[MissionEntry.model_validate(m) for m in missions],
        total=len(missions),
    )
