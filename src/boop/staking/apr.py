"""APR composition: base curve, independent bonuses and the capped total.

Every function here is pure. Caps and thresholds come from ``Settings`` so
there is exactly one definition of each economic constant.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass

from boop.config import Settings, get_settings

# Level at which the level bonus reaches its cap
LEVEL_BONUS_CAP_LEVEL = 20

# (minimum consecutive daily claims, bonus points), checked top-down
STREAK_BONUS_STEPS: list[tuple[int, float]] = [
    (30, 10),
    (14, 4),
    (7, 2),
    (1, 1),
]


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _finite(value: float) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value)


def base_apr(total_staked: float, settings: Settings | None = None) -> float:
    """Base APR for an aggregate active stake.

    Log-normalized between min_stake and stake_cap, so the curve is concave,
    monotonic non-decreasing, 0 below min_stake and flat at base_apr_max from
    stake_cap upward.
    """
    s = settings or get_settings()
    if not _finite(total_staked) or total_staked < s.min_stake:
        return 0.0
    if total_staked >= s.stake_cap:
        return float(s.base_apr_max)

    t = math.log10(total_staked / s.min_stake) / math.log10(s.stake_cap / s.min_stake)
    return round(s.base_apr_max * _clamp(t, 0.0, 1.0), 2)


def level_bonus(level: int, settings: Settings | None = None) -> float:
    """Linear in level, reaching level_bonus_max at LEVEL_BONUS_CAP_LEVEL."""
    s = settings or get_settings()
    if not _finite(level) or level <= 0:
        return 0.0
    raw = min(level, LEVEL_BONUS_CAP_LEVEL) / LEVEL_BONUS_CAP_LEVEL * s.level_bonus_max
    return round(_clamp(raw, 0.0, s.level_bonus_max), 2)


def streak_bonus(daily_streak: int, settings: Settings | None = None) -> float:
    s = settings or get_settings()
    if not _finite(daily_streak) or daily_streak <= 0:
        return 0.0
    for threshold, bonus in STREAK_BONUS_STEPS:
        if daily_streak >= threshold:
            return float(min(bonus, s.streak_bonus_max))
    return 0.0


def nft_bonus(has_nft: bool, total_staked: float, settings: Settings | None = None) -> float:
    s = settings or get_settings()
    if not has_nft or not _finite(total_staked):
        return 0.0
    if total_staked < s.nft_eligibility_stake:
        return 0.0
    return float(s.nft_bonus_max)


def boost_bonus(boost_in_effect: bool, settings: Settings | None = None) -> float:
    s = settings or get_settings()
    return float(s.boost_bonus_max) if boost_in_effect else 0.0


@dataclass(frozen=True)
class AprBreakdown:
    """Total APR plus the per-component contribution, all in percent."""

    total: float
    base: float = 0.0
    level: float = 0.0
    streak: float = 0.0
    nft: float = 0.0
    boost: float = 0.0

    def components(self) -> dict[str, float]:
        data = asdict(self)
        data.pop("total")
        return data


ZERO_APR = AprBreakdown(total=0.0)


def compose_apr(
    total_staked: float,
    level: int,
    daily_streak: int,
    has_nft: bool,
    boost_in_effect: bool,
    settings: Settings | None = None,
) -> AprBreakdown:
    """Combine base and bonuses into one APR clamped to [0, total_apr_max].

    A user below min_stake earns nothing regardless of bonus status.
    """
    s = settings or get_settings()
    if not _finite(total_staked) or total_staked < s.min_stake:
        return ZERO_APR

    base = base_apr(total_staked, s)
    lvl = level_bonus(level, s)
    stk = streak_bonus(daily_streak, s)
    nft = nft_bonus(has_nft, total_staked, s)
    boost = boost_bonus(boost_in_effect, s)

    total = round(_clamp(base + lvl + stk + nft + boost, 0.0, s.total_apr_max), 2)
    return AprBreakdown(total=total, base=base, level=lvl, streak=stk, nft=nft, boost=boost)
