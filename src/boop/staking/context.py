"""Load everything the APR composer needs for one user."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boop.config import Settings, get_settings
from boop.db.models import Boost, StakePosition, User
from boop.gamification.streak import is_streak_alive
from boop.perks.boost_service import get_user_boosts, highest_boost
from boop.perks.nft_service import has_active_nft
from boop.staking.accrual import AprTimeline, checkpoint_of
from boop.staking.apr import AprBreakdown, compose_apr
from boop.staking.status import StakeStatus
from boop.timeutils import ensure_utc
from boop.users.service import require_user


@dataclass
class StakingContext:
    user: User
    positions: list[StakePosition]
    boosts: list[Boost]
    has_nft: bool
    now: datetime
    settings: Settings

    @property
    def active_positions(self) -> list[StakePosition]:
        return [p for p in self.positions if p.status == StakeStatus.ACTIVE]

    @property
    def total_staked(self) -> float:
        return sum(p.principal or 0.0 for p in self.active_positions)

    @property
    def active_boost(self) -> Boost | None:
        return highest_boost(self.boosts, self.now)

    def effective_streak(self, when: datetime) -> int:
        """The streak counts toward APR only while a claim could still extend it."""
        if not is_streak_alive(self.user.last_claim_at, when, self.settings.streak_window_seconds):
            return 0
        return self.user.daily_streak or 0

    def apr_at(self, when: datetime) -> AprBreakdown:
        """APR in force at an instant, given the stake and perks loaded now."""
        return compose_apr(
            total_staked=self.total_staked,
            level=self.user.level or 0,
            daily_streak=self.effective_streak(when),
            has_nft=self.has_nft,
            boost_in_effect=highest_boost(self.boosts, when) is not None,
            settings=self.settings,
        )

    def apr(self) -> AprBreakdown:
        """APR from the current aggregate active stake and perks."""
        return self.apr_at(self.now)

    def timeline(self) -> AprTimeline:
        """APR over time since the oldest checkpoint.

        Stake, level and NFT only change through operations that checkpoint
        first, so boost edges and the streak lapse are the only breaks.
        """
        breaks: list[datetime] = []
        for boost in self.boosts:
            breaks.extend(t for t in (ensure_utc(boost.starts_at), ensure_utc(boost.ends_at)) if t is not None)
        last_claim = ensure_utc(self.user.last_claim_at)
        if last_claim is not None:
            breaks.append(last_claim + timedelta(seconds=self.settings.streak_window_seconds))
        return AprTimeline(rate_at=lambda when: self.apr_at(when).total, breaks=tuple(breaks))

    def position(self, stake_id: int) -> StakePosition | None:
        return next((p for p in self.positions if p.id == stake_id), None)


async def get_positions(db: AsyncSession, user_id: int, *, for_update: bool = False) -> list[StakePosition]:
    stmt = (
        select(StakePosition)
        .where(StakePosition.user_id == user_id)
        .order_by(StakePosition.started_at.desc(), StakePosition.id.desc())
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def load_context(
    db: AsyncSession,
    fid: int,
    now: datetime,
    *,
    for_update: bool = False,
    settings: Settings | None = None,
) -> StakingContext:
    """Load user, positions and perks. for_update locks the user and positions.

    Boosts are loaded back to the oldest active checkpoint so accrual over
    an interval that spans a boost's expiry still prices the boosted part.
    """
    user = await require_user(db, fid, for_update=for_update)
    positions = await get_positions(db, user.id, for_update=for_update)
    checkpoints = [checkpoint_of(p) for p in positions if p.status == StakeStatus.ACTIVE]
    since = min([now, *(c for c in checkpoints if c is not None)])
    boosts = await get_user_boosts(db, user.id, since)
    nft = await has_active_nft(db, user.id)
    return StakingContext(
        user=user,
        positions=positions,
        boosts=boosts,
        has_nft=nft,
        now=now,
        settings=settings or get_settings(),
    )
