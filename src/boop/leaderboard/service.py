"""Leaderboard reads: ranked users by score, all-time or for the current month."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from boop.db.models import StakePosition, User
from boop.errors import ErrorKind, StakingError
from boop.gamification.xp_service import xp_since
from boop.leaderboard.cache import LeaderboardCache
from boop.leaderboard.scoring import (
    MAX_PAGE_SIZE,
    SCORE_FORMULA,
    compute_score,
    neighbors,
    paginate,
    rank_rows,
)
from boop.staking.status import StakeStatus
from boop.timeutils import get_month_key, month_start, utcnow

logger = logging.getLogger(__name__)

MODES = ("alltime", "monthly")


def validate_mode(mode: str) -> str:
    mode = (mode or "alltime").lower()
    if mode not in MODES:
        raise StakingError(ErrorKind.VALIDATION, f"Invalid mode. Use one of: {', '.join(MODES)}")
    return mode


def _cache_mode(mode: str, now: datetime) -> str:
    # Monthly lists roll over with the calendar month
    return f"monthly:{get_month_key(now)}" if mode == "monthly" else mode


async def _active_stake_totals(db: AsyncSession) -> dict[int, float]:
    result = await db.execute(
        select(StakePosition.user_id, func.sum(StakePosition.principal).label("total"))
        .where(StakePosition.status == StakeStatus.ACTIVE)
        .group_by(StakePosition.user_id)
    )
    return {row.user_id: float(row.total or 0) for row in result}


async def build_ranked_rows(
    db: AsyncSession,
    mode: str,
    only_stakers: bool,
    now: datetime,
) -> list[dict[str, Any]]:
    """Score every user and rank them. Monthly mode swaps lifetime xp for this month's grants."""
    stakes = await _active_stake_totals(db)
    monthly_xp = await xp_since(db, month_start(now)) if mode == "monthly" else None

    result = await db.execute(select(User))
    rows = []
    for user in result.scalars():
        total_staked = stakes.get(user.id, 0.0)
        if only_stakers and total_staked <= 0:
            continue
        xp = monthly_xp.get(user.id, 0) if monthly_xp is not None else (user.xp or 0)
        rows.append({
            "fid": user.fid,
            "username": user.username,
            "xp": xp,
            "level": user.level or 0,
            "dailyStreak": user.daily_streak or 0,
            "totalStaked": total_staked,
            "score": compute_score(xp, total_staked),
        })
    return rank_rows(rows)


async def _ranked(
    db: AsyncSession,
    cache: LeaderboardCache,
    mode: str,
    only_stakers: bool,
    now: datetime,
) -> list[dict[str, Any]]:
    cache_mode = _cache_mode(mode, now)
    rows = await cache.get(cache_mode, only_stakers)
    if rows is not None:
        return rows
    rows = await build_ranked_rows(db, mode, only_stakers, now)
    await cache.set(cache_mode, only_stakers, rows)
    return rows


def _mark_me(rows: list[dict[str, Any]], fid: int | None) -> None:
    for row in rows:
        row["isMe"] = fid is not None and row["fid"] == fid


async def get_leaderboard(
    db: AsyncSession,
    cache: LeaderboardCache,
    mode: str = "alltime",
    page: int = 1,
    limit: int = 50,
    fid: int | None = None,
    only_stakers: bool = False,
    now: datetime | None = None,
) -> dict[str, Any]:
    """One page of the ranked list, plus the caller's rank when fid is given."""
    now = now or utcnow()
    mode = validate_mode(mode)
    if page < 1:
        raise StakingError(ErrorKind.VALIDATION, "page must be >= 1")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise StakingError(ErrorKind.VALIDATION, f"limit must be between 1 and {MAX_PAGE_SIZE}")

    rows = await _ranked(db, cache, mode, only_stakers, now)
    _mark_me(rows, fid)

    result = paginate(rows, page, limit)
    result["mode"] = mode
    result["formula"] = SCORE_FORMULA
    result["myRank"] = neighbors(rows, fid) if fid is not None else None
    return result


async def get_my_rank(
    db: AsyncSession,
    cache: LeaderboardCache,
    fid: int,
    mode: str = "alltime",
    now: datetime | None = None,
) -> dict[str, Any]:
    """The caller's rank, score and ±2 neighbors. NOT_FOUND when the user is unranked."""
    now = now or utcnow()
    mode = validate_mode(mode)
    if not fid or fid <= 0:
        raise StakingError(ErrorKind.VALIDATION, "Missing fid")

    rows = await _ranked(db, cache, mode, False, now)
    _mark_me(rows, fid)
    mine = neighbors(rows, fid)
    if mine is None:
        raise StakingError(ErrorKind.NOT_FOUND, "User not found", {"fid": fid})
    mine["mode"] = mode
    mine["formula"] = SCORE_FORMULA
    return mine
