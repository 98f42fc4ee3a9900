"""Leaderboard API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from boop.dependencies import get_db, get_leaderboard_cache
from boop.leaderboard.cache import LeaderboardCache
from boop.leaderboard.schemas import LeaderboardResponse, MyRankResponse
from boop.leaderboard.service import get_leaderboard, get_my_rank

router = APIRouter(prefix="/api/v1", tags=["Leaderboard"])


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(
    mode: str = Query("alltime"),
    page: int = Query(1),
    limit: int = Query(50),
    fid: int | None = Query(None),
    only_stakers: bool = Query(False, alias="onlyStakers"),
    db: AsyncSession = Depends(get_db),
    cache: LeaderboardCache = Depends(get_leaderboard_cache),
):
    """Ranked users by score. Pass fid to get your own rank alongside the page."""
    data = await get_leaderboard(
        db, cache, mode=mode, page=page, limit=limit, fid=fid, only_stakers=only_stakers,
    )
    return LeaderboardResponse(**data)


@router.get("/leaderboard/me", response_model=MyRankResponse)
async def my_rank(
    fid: int = Query(...),
    mode: str = Query("alltime"),
    db: AsyncSession = Depends(get_db),
    cache: LeaderboardCache = Depends(get_leaderboard_cache),
):
    return MyRankResponse(**await get_my_rank(db, cache, fid, mode=mode))
