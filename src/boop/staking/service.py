"""Staking operations: status, stake lifecycle, claims and withdrawals.

Each mutating operation is one unit of work for one user: the user row and
its positions are locked, every guard runs before any mutation, and a single
commit publishes the result. Any storage failure rolls the whole operation
back and surfaces as INTERNAL.
"""

from __future__ import annotations

import logging
import math
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from boop.config import Settings, get_settings
from boop.db.models import Payout, StakePosition
from boop.errors import ErrorKind, StakingError
from boop.events import publish_event
from boop.gamification.level_thresholds import compute_level
from boop.gamification.streak import is_streak_alive
from boop.gamification.xp_service import grant_xp
from boop.leaderboard.scoring import compute_score
from boop.perks.tiers import BoostKind
from boop.staking.accrual import checkpoint_active, pending_reward
from boop.staking.claims import (
    ensure_can_claim,
    next_claim_in_seconds,
    settle_claim,
    settle_principal_withdrawal,
    settle_reward_withdrawal,
)
from boop.staking.context import StakingContext, load_context
from boop.staking.lifecycle import begin_unstake, ensure_withdrawable, refresh_unlock, validate_transition
from boop.staking.status import StakeStatus
from boop.timeutils import utcnow
from boop.users.service import require_user

logger = logging.getLogger(__name__)


@asynccontextmanager
async def unit_of_work(db: AsyncSession, operation: str, fid: int) -> AsyncIterator[None]:
    """Commit on success; roll back on any failure.

    Domain rejections propagate unchanged. Storage failures are logged with
    their cause and re-raised as a generic INTERNAL error.
    """
    try:
        yield
        await db.commit()
    except StakingError:
        await db.rollback()
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("%s failed for fid %s", operation, fid)
        raise StakingError(ErrorKind.INTERNAL, f"{operation} failed") from e


def _require_position(ctx: StakingContext, stake_id: int) -> StakePosition:
    position = ctx.position(stake_id)
    if position is None:
        raise StakingError(ErrorKind.NOT_FOUND, "Stake not found", {"stakeId": stake_id})
    return position


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_status(
    db: AsyncSession,
    fid: int,
    now: datetime | None = None,
    settings: Settings | None = None,
) -> dict:
    """APR breakdown, balances and claim readiness. Read-only."""
    now = now or utcnow()
    ctx = await load_context(db, fid, now, settings=settings)
    s = ctx.settings
    user = ctx.user
    apr = ctx.apr()
    timeline = ctx.timeline()

    total_unclaimed = 0.0
    for position in ctx.positions:
        refresh_unlock(position, now)
        if position.status != StakeStatus.WITHDRAWN:
            total_unclaimed += pending_reward(position, timeline, now)

    wait = next_claim_in_seconds(user, now, s)
    boost = ctx.active_boost
    level_info = compute_level(user.xp or 0)

    return {
        "fid": user.fid,
        "totalApr": apr.total,
        "components": apr.components(),
        "totalStaked": ctx.total_staked,
        "totalUnclaimed": round(total_unclaimed, 8),
        "canClaim": wait == 0,
        "nextClaimInSeconds": wait,
        "withdrawableBalance": user.withdrawable_balance or 0.0,
        "xp": user.xp or 0,
        "level": user.level or 0,
        "levelTitle": level_info["title"],
        "dailyStreak": user.daily_streak or 0,
        "streakAlive": is_streak_alive(user.last_claim_at, now, s.streak_window_seconds),
        "score": compute_score(user.xp or 0, ctx.total_staked),
        "hasNft": ctx.has_nft,
        "activeBoost": BoostKind(boost.kind).value if boost else None,
        "boostEndsAt": boost.ends_at if boost else None,
    }


async def list_stakes(db: AsyncSession, fid: int, now: datetime | None = None) -> list[StakePosition]:
    """User's positions, newest first, with time-gated unlocks applied in memory."""
    now = now or utcnow()
    ctx = await load_context(db, fid, now)
    for position in ctx.positions:
        refresh_unlock(position, now)
    return ctx.positions


# ---------------------------------------------------------------------------
# Stake lifecycle
# ---------------------------------------------------------------------------


async def create_stake(
    db: AsyncSession,
    redis: object | None,
    fid: int,
    amount: float,
    now: datetime | None = None,
    settings: Settings | None = None,
) -> StakePosition:
    """Open a new active position. Existing positions are checkpointed at the old APR first."""
    s = settings or get_settings()
    now = now or utcnow()

    if amount is None or not math.isfinite(amount) or amount <= 0:
        raise StakingError(ErrorKind.VALIDATION, "Invalid stake amount")
    if amount < s.min_stake:
        raise StakingError(
            ErrorKind.INSUFFICIENT_STAKE,
            f"Minimum stake is {s.min_stake:g} BOOP",
            {"minStake": s.min_stake},
        )

    async with unit_of_work(db, "create_stake", fid):
        ctx = await load_context(db, fid, now, for_update=True, settings=s)
        checkpoint_active(ctx.active_positions, ctx.timeline(), now)

        position = StakePosition(
            user_id=ctx.user.id,
            principal=float(amount),
            status=StakeStatus.ACTIVE,
            started_at=now,
            last_accrual_at=now,
            unlock_at=None,
            unclaimed_reward=0.0,
            withdrawn_at=None,
        )
        db.add(position)
        await db.flush()

    logger.info("Stake %s created for fid %d: %s BOOP", position.id, fid, amount)
    await publish_event(redis, "stake_created", {"fid": fid, "stake_id": position.id, "amount": amount})
    return position


async def request_unstake(
    db: AsyncSession,
    redis: object | None,
    fid: int,
    stake_id: int,
    now: datetime | None = None,
    settings: Settings | None = None,
) -> StakePosition:
    """active -> pending_unstake with a final accrual pass at the pre-unstake APR."""
    s = settings or get_settings()
    now = now or utcnow()

    async with unit_of_work(db, "request_unstake", fid):
        ctx = await load_context(db, fid, now, for_update=True, settings=s)
        position = _require_position(ctx, stake_id)
        refresh_unlock(position, now)
        validate_transition(position.status, StakeStatus.PENDING_UNSTAKE)

        timeline = ctx.timeline()
        checkpoint_active(ctx.active_positions, timeline, now)
        snapshot = begin_unstake(position, timeline, now, timedelta(days=s.unlock_period_days))

    logger.info("Stake %s unstaked for fid %d, snapshot %.8f, unlock at %s", stake_id, fid, snapshot, position.unlock_at)
    await publish_event(redis, "stake_unstaked", {
        "fid": fid,
        "stake_id": stake_id,
        "unlock_at": position.unlock_at,
        "snapshot": snapshot,
    })
    return position


async def withdraw_stake(
    db: AsyncSession,
    redis: object | None,
    fid: int,
    stake_id: int,
    now: datetime | None = None,
    settings: Settings | None = None,
) -> dict:
    """unlocked -> withdrawn; releases principal minus the withdraw fee."""
    s = settings or get_settings()
    now = now or utcnow()

    async with unit_of_work(db, "withdraw_stake", fid):
        ctx = await load_context(db, fid, now, for_update=True, settings=s)
        position = _require_position(ctx, stake_id)
        ensure_withdrawable(position, now)

        result = settle_principal_withdrawal(ctx.user, position, now, s)
        db.add(Payout(
            user_id=ctx.user.id,
            stake_id=position.id,
            kind="principal",
            gross=result.principal,
            fee=result.fee,
            net=result.amount,
            created_at=now,
        ))

    logger.info("Stake %s withdrawn for fid %d: amount %.8f fee %.8f", stake_id, fid, result.amount, result.fee)
    await publish_event(redis, "stake_withdrawn", {"fid": fid, "stake_id": stake_id, "amount": result.amount})
    return {
        "stakeId": stake_id,
        "principal": result.principal,
        "amount": result.amount,
        "fee": result.fee,
        "rewardCredited": result.reward_credited,
    }


# ---------------------------------------------------------------------------
# Rewards
# ---------------------------------------------------------------------------


async def claim(
    db: AsyncSession,
    redis: object | None,
    fid: int,
    now: datetime | None = None,
    settings: Settings | None = None,
) -> dict:
    """Convert accrued reward into withdrawable balance, net of the claim fee.

    Grants XP, recomputes level and advances the daily streak in the same
    transaction. Rejected with TOO_EARLY inside the cooldown.
    """
    s = settings or get_settings()
    now = now or utcnow()

    async with unit_of_work(db, "claim", fid):
        ctx = await load_context(db, fid, now, for_update=True, settings=s)
        user = ctx.user
        ensure_can_claim(user, now, s)

        apr = ctx.apr()
        settlement = settle_claim(user, ctx.positions, apr, now, s, timeline=ctx.timeline())
        old_level = await grant_xp(
            db,
            user,
            s.xp_per_claim,
            source="claim",
            description=f"Daily claim (streak {settlement.new_streak})",
            idempotency_key=f"claim:{user.id}:{int(now.timestamp())}",
            now=now,
        )
        if old_level is None:
            raise StakingError(ErrorKind.INVALID_STATE, "Claim already processed")

    logger.info(
        "Claim for fid %d: gross %.8f fee %.8f net %.8f streak %d",
        fid, settlement.gross, settlement.fee, settlement.net, settlement.new_streak,
    )
    await publish_event(redis, "reward_claimed", {
        "fid": fid,
        "gross": settlement.gross,
        "net": settlement.net,
        "streak": settlement.new_streak,
    })
    if user.level > old_level:
        await publish_event(redis, "level_up", {
            "fid": fid,
            "old_level": old_level,
            "new_level": user.level,
            "title": compute_level(user.xp)["title"],
        })

    return {
        "gross": settlement.gross,
        "fee": settlement.fee,
        "net": settlement.net,
        "newXp": user.xp,
        "newLevel": user.level,
        "newStreak": settlement.new_streak,
        "withdrawableBalance": settlement.withdrawable_balance,
        "apr": apr.total,
        "nextClaimInSeconds": s.claim_cooldown_seconds,
    }


async def withdraw_rewards(
    db: AsyncSession,
    redis: object | None,
    fid: int,
    now: datetime | None = None,
) -> dict:
    """Hand the whole claimed balance to settlement. No second fee is charged."""
    now = now or utcnow()

    async with unit_of_work(db, "withdraw_rewards", fid):
        user = await require_user(db, fid, for_update=True)
        result = settle_reward_withdrawal(user, now)
        db.add(Payout(
            user_id=user.id,
            kind="reward",
            gross=result.gross,
            fee=result.fee,
            net=result.net,
            created_at=now,
        ))

    logger.info("Reward withdrawal for fid %d: %.8f", fid, result.net)
    await publish_event(redis, "reward_withdrawn", {"fid": fid, "net": result.net})
    return {"gross": result.gross, "fee": result.fee, "net": result.net}


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------


async def sweep_unlocks(db: AsyncSession, now: datetime | None = None) -> int:
    """Persist pending_unstake -> unlocked for every position past its unlock time."""
    now = now or utcnow()
    result = await db.execute(
        select(StakePosition)
        .where(
            StakePosition.status == StakeStatus.PENDING_UNSTAKE,
            StakePosition.unlock_at <= now,
        )
        .with_for_update(skip_locked=True)
    )
    unlocked = sum(1 for position in result.scalars() if refresh_unlock(position, now))
    await db.commit()
    logger.info("Unlock sweep complete: %d positions unlocked", unlocked)
    return unlocked
