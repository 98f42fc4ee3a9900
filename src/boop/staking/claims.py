"""Claim and withdrawal settlement over already-loaded rows.

These functions mutate in-memory User / StakePosition objects only; the
service layer owns locking, XP ledger writes and the single commit that makes
a claim all-or-nothing. Every guard runs before the first mutation.

Fee policy: reward is charged exactly once, at claim time (claim_fee_rate).
Withdrawing the claimed balance is free. Principal pays withdraw_fee_rate.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from boop.config import Settings, get_settings
from boop.errors import ErrorKind, StakingError
from boop.gamification.streak import next_streak
from boop.staking.accrual import AprTimeline, accrue
from boop.staking.apr import AprBreakdown
from boop.staking.lifecycle import complete_withdrawal, refresh_unlock
from boop.staking.status import StakeStatus
from boop.timeutils import ensure_utc

if TYPE_CHECKING:
    from boop.db.models import StakePosition, User


@dataclass(frozen=True)
class ClaimSettlement:
    gross: float
    fee: float
    net: float
    new_streak: int
    withdrawable_balance: float


@dataclass(frozen=True)
class PrincipalWithdrawal:
    principal: float
    fee: float
    amount: float
    reward_credited: float


@dataclass(frozen=True)
class RewardWithdrawal:
    gross: float
    fee: float
    net: float


def split_fee(gross: float, rate: float) -> tuple[float, float]:
    """Return (fee, net) for a gross amount."""
    gross = max(0.0, gross)
    fee = round(gross * rate, 8)
    return fee, max(0.0, round(gross - fee, 8))


def next_claim_in_seconds(user: User, now: datetime, settings: Settings | None = None) -> int:
    """Seconds until the claim cooldown expires (0 when a claim is allowed)."""
    s = settings or get_settings()
    last = ensure_utc(user.last_claim_at)
    if last is None:
        return 0
    ready_at = last + timedelta(seconds=s.claim_cooldown_seconds)
    if now >= ready_at:
        return 0
    return max(0, int((ready_at - now).total_seconds()))


def ensure_can_claim(user: User, now: datetime, settings: Settings | None = None) -> None:
    remaining = next_claim_in_seconds(user, now, settings)
    if remaining > 0:
        raise StakingError(
            ErrorKind.TOO_EARLY,
            "Too early to claim",
            {"nextClaimInSeconds": remaining},
        )


def collect_rewards(
    positions: Sequence[StakePosition],
    apr: AprBreakdown,
    now: datetime,
    timeline: AprTimeline | None = None,
) -> float:
    """Accrue active positions to now, sum every stored reward and reset them.

    Accrual follows timeline when given, so a boost that expired since the
    last checkpoint still prices the time it was in effect.

    Frozen positions contribute only their stored snapshot. Withdrawn
    positions are skipped. Returns the gross floored at 0.
    """
    gross = 0.0
    for position in positions:
        refresh_unlock(position, now)
        if position.status == StakeStatus.WITHDRAWN:
            continue
        if position.status == StakeStatus.ACTIVE:
            accrue(position, timeline if timeline is not None else apr.total, now)
        gross += position.unclaimed_reward or 0.0

    for position in positions:
        if position.status == StakeStatus.WITHDRAWN:
            continue
        position.unclaimed_reward = 0.0
        checkpoint = ensure_utc(position.last_accrual_at)
        if checkpoint is None or checkpoint < now:
            position.last_accrual_at = now

    return max(0.0, round(gross, 8))


def settle_claim(
    user: User,
    positions: Sequence[StakePosition],
    apr: AprBreakdown,
    now: datetime,
    settings: Settings | None = None,
    timeline: AprTimeline | None = None,
) -> ClaimSettlement:
    """Apply a claim to the user and positions (XP is granted by the caller)."""
    s = settings or get_settings()
    ensure_can_claim(user, now, s)

    gross = collect_rewards(positions, apr, now, timeline)
    fee, net = split_fee(gross, s.claim_fee_rate)

    new_streak = next_streak(user.daily_streak, user.last_claim_at, now, s.streak_window_seconds)
    user.withdrawable_balance = round((user.withdrawable_balance or 0.0) + net, 8)
    user.daily_streak = new_streak
    user.last_claim_at = now
    user.updated_at = now

    return ClaimSettlement(
        gross=gross,
        fee=fee,
        net=net,
        new_streak=new_streak,
        withdrawable_balance=user.withdrawable_balance,
    )


def settle_principal_withdrawal(
    user: User,
    position: StakePosition,
    now: datetime,
    settings: Settings | None = None,
) -> PrincipalWithdrawal:
    """Withdraw an unlocked position's principal.

    A frozen reward snapshot still on the position is credited to the
    withdrawable balance net of the claim fee, so it is neither lost nor
    charged twice.
    """
    s = settings or get_settings()
    principal, frozen_reward = complete_withdrawal(position, now)
    fee, amount = split_fee(principal, s.withdraw_fee_rate)

    reward_credited = 0.0
    if frozen_reward > 0:
        _, reward_credited = split_fee(frozen_reward, s.claim_fee_rate)
        user.withdrawable_balance = round((user.withdrawable_balance or 0.0) + reward_credited, 8)
        user.updated_at = now

    return PrincipalWithdrawal(principal=principal, fee=fee, amount=amount, reward_credited=reward_credited)


def settle_reward_withdrawal(user: User, now: datetime) -> RewardWithdrawal:
    """Release the whole claimed balance. Claim already charged the fee."""
    gross = max(0.0, user.withdrawable_balance or 0.0)
    if gross <= 0:
        raise StakingError(ErrorKind.VALIDATION, "Nothing to withdraw", {"withdrawableBalance": 0.0})

    user.withdrawable_balance = 0.0
    user.updated_at = now
    return RewardWithdrawal(gross=gross, fee=0.0, net=gross)
