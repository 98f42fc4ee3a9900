"""Stake position state machine.

State progression: active -> pending_unstake -> unlocked -> withdrawn
Transitions are validated: no skipping states or going backwards, and
withdrawn is terminal. pending_unstake -> unlocked is purely time-gated.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from boop.errors import ErrorKind, StakingError
from boop.staking.accrual import AprTimeline, accrue
from boop.staking.status import StakeStatus
from boop.timeutils import ensure_utc

if TYPE_CHECKING:
    from boop.db.models import StakePosition

VALID_TRANSITIONS: dict[StakeStatus, list[StakeStatus]] = {
    StakeStatus.ACTIVE: [StakeStatus.PENDING_UNSTAKE],
    StakeStatus.PENDING_UNSTAKE: [StakeStatus.UNLOCKED],
    StakeStatus.UNLOCKED: [StakeStatus.WITHDRAWN],
    StakeStatus.WITHDRAWN: [],
}


def validate_transition(current: StakeStatus, target: StakeStatus) -> None:
    """Validate a state transition. Raises StakingError if invalid."""
    current = StakeStatus(current)
    target = StakeStatus(target)
    if current == StakeStatus.WITHDRAWN:
        raise StakingError(ErrorKind.ALREADY_WITHDRAWN, "Stake has already been withdrawn")
    valid = VALID_TRANSITIONS[current]
    if target not in valid:
        raise StakingError(
            ErrorKind.INVALID_STATE,
            f"Invalid transition: {current.value} -> {target.value}",
            {"status": current.value},
        )


def _transition(position: StakePosition, target: StakeStatus) -> None:
    validate_transition(position.status, target)
    position.status = target


def begin_unstake(
    position: StakePosition,
    apr: float | AprTimeline,
    now: datetime,
    unlock_period: timedelta,
) -> float:
    """Freeze an active position and start its unlock timer.

    Runs one final accrual to now so nothing earned up to the transition is
    lost, then stamps the checkpoint. Returns the snapshotted reward.
    """
    validate_transition(position.status, StakeStatus.PENDING_UNSTAKE)

    accrue(position, apr, now)
    position.unclaimed_reward = max(0.0, position.unclaimed_reward or 0.0)
    checkpoint = ensure_utc(position.last_accrual_at)
    if checkpoint is None or checkpoint < now:
        position.last_accrual_at = now
    position.unlock_at = now + unlock_period
    position.status = StakeStatus.PENDING_UNSTAKE
    return position.unclaimed_reward


def is_unlockable(position: StakePosition, now: datetime) -> bool:
    unlock_at = ensure_utc(position.unlock_at)
    return unlock_at is not None and now >= unlock_at


def refresh_unlock(position: StakePosition, now: datetime) -> bool:
    """Move pending_unstake -> unlocked once the unlock time has passed.

    Returns True when the position changed state.
    """
    if position.status != StakeStatus.PENDING_UNSTAKE or not is_unlockable(position, now):
        return False
    _transition(position, StakeStatus.UNLOCKED)
    return True


def ensure_withdrawable(position: StakePosition, now: datetime) -> None:
    """Check a principal withdrawal is legal right now, without mutating."""
    status = StakeStatus(position.status)
    if status == StakeStatus.WITHDRAWN:
        raise StakingError(ErrorKind.ALREADY_WITHDRAWN, "Stake has already been withdrawn")
    if status == StakeStatus.ACTIVE:
        raise StakingError(
            ErrorKind.INVALID_STATE,
            "Stake must be unstaked and unlocked before withdrawal",
            {"status": status.value},
        )
    if not is_unlockable(position, now):
        unlock_at = ensure_utc(position.unlock_at)
        raise StakingError(
            ErrorKind.STILL_LOCKED,
            "Stake is still locked",
            {
                "unlockAt": unlock_at.isoformat() if unlock_at else None,
                "unlockInSeconds": max(0, int((unlock_at - now).total_seconds())) if unlock_at else None,
            },
        )


def complete_withdrawal(position: StakePosition, now: datetime) -> tuple[float, float]:
    """Move an unlocked position to withdrawn and zero its balances.

    Returns (principal, frozen_reward) as they were before zeroing.
    """
    ensure_withdrawable(position, now)
    refresh_unlock(position, now)
    _transition(position, StakeStatus.WITHDRAWN)

    principal = position.principal or 0.0
    frozen_reward = max(0.0, position.unclaimed_reward or 0.0)
    position.principal = 0.0
    position.unclaimed_reward = 0.0
    position.withdrawn_at = now
    return principal, frozen_reward
