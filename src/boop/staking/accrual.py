"""Reward accrual engine.

Accrual is interval based: each call measures from the position's checkpoint
(``last_accrual_at``) to ``now`` and then advances the checkpoint. Calling it
twice with a stale ``from`` double-counts, so callers always go through
``accrue`` rather than ``reward_delta`` when mutating a position.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from boop.staking.status import StakeStatus
from boop.timeutils import ensure_utc

if TYPE_CHECKING:
    from boop.db.models import StakePosition

# Fixed 365-day year, no leap-year adjustment
SECONDS_PER_YEAR = 365 * 24 * 3600


def reward_delta(principal: float, apr_percent: float, from_ts: datetime, to_ts: datetime) -> float:
    """Reward earned by principal at apr_percent over [from_ts, to_ts]."""
    if not math.isfinite(principal) or principal <= 0:
        return 0.0
    if not math.isfinite(apr_percent) or apr_percent <= 0:
        return 0.0
    if from_ts is None or to_ts is None:
        return 0.0

    elapsed = (ensure_utc(to_ts) - ensure_utc(from_ts)).total_seconds()
    if elapsed <= 0:
        return 0.0

    delta = principal * (apr_percent / 100) * (elapsed / SECONDS_PER_YEAR)
    if not math.isfinite(delta):
        return 0.0
    return round(delta, 8)


@dataclass(frozen=True)
class AprTimeline:
    """APR as a step function of time.

    ``rate_at`` gives the APR in force at an instant; ``breaks`` are the
    instants where it may change (boost start/end, streak lapse). Accrual
    over an interval is split at every break inside it and each piece is
    priced at the rate in force at its midpoint.
    """

    rate_at: Callable[[datetime], float]
    breaks: tuple[datetime, ...] = ()

    def segments(self, from_ts: datetime, to_ts: datetime) -> list[tuple[datetime, datetime, float]]:
        from_ts = ensure_utc(from_ts)
        to_ts = ensure_utc(to_ts)
        if from_ts is None or to_ts is None or to_ts <= from_ts:
            return []
        inner = sorted({b for b in map(ensure_utc, self.breaks) if b is not None and from_ts < b < to_ts})
        cuts = [from_ts, *inner, to_ts]
        return [
            (start, end, self.rate_at(start + (end - start) / 2))
            for start, end in zip(cuts, cuts[1:])
        ]

    def delta(self, principal: float, from_ts: datetime, to_ts: datetime) -> float:
        total = sum(reward_delta(principal, rate, start, end) for start, end, rate in self.segments(from_ts, to_ts))
        return round(total, 8)


def _delta(principal: float, apr: float | AprTimeline, from_ts: datetime, to_ts: datetime) -> float:
    if isinstance(apr, AprTimeline):
        return apr.delta(principal, from_ts, to_ts)
    return reward_delta(principal, apr, from_ts, to_ts)


def checkpoint_of(position: StakePosition) -> datetime:
    return ensure_utc(position.last_accrual_at or position.started_at)


def accrue(position: StakePosition, apr: float | AprTimeline, now: datetime) -> float:
    """Accrue an active position up to now and advance its checkpoint.

    ``apr`` is a flat percentage or an AprTimeline. Non-active positions and
    degenerate inputs return 0 and leave the position untouched.
    """
    if position.status != StakeStatus.ACTIVE:
        return 0.0

    delta = _delta(position.principal, apr, checkpoint_of(position), now)
    if delta <= 0:
        return 0.0

    position.unclaimed_reward = (position.unclaimed_reward or 0.0) + delta
    position.last_accrual_at = now
    return delta


def pending_reward(position: StakePosition, apr: float | AprTimeline, now: datetime) -> float:
    """Stored reward plus what accrual to now would add, without mutating."""
    stored = position.unclaimed_reward or 0.0
    if position.status != StakeStatus.ACTIVE:
        return stored
    return stored + _delta(position.principal, apr, checkpoint_of(position), now)


def checkpoint_active(positions: Iterable[StakePosition], apr: float | AprTimeline, now: datetime) -> float:
    """Accrue every active position at the APR in force before an APR input changes."""
    return sum(accrue(p, apr, now) for p in positions)
