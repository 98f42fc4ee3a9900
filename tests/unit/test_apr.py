"""APR curve, bonus calculators and composer."""

import math

import pytest
from pydantic import ValidationError

from boop.config import Settings
from boop.staking.apr import (
    ZERO_APR,
    base_apr,
    boost_bonus,
    compose_apr,
    level_bonus,
    nft_bonus,
    streak_bonus,
)


class TestBaseApr:
    """Log-normalized base curve."""

    def test_below_min_stake_is_zero(self):
        assert base_apr(0) == 0.0
        assert base_apr(999.99) == 0.0

    def test_at_min_stake_is_zero(self):
        assert base_apr(1_000) == 0.0

    def test_mid_curve_between_bounds(self):
        apr = base_apr(1_000_000)
        assert 0 < apr < 60

    def test_mid_curve_value(self):
        # log10(1000) / log10(2500) * 60
        expected = round(60 * 3 / math.log10(2_500), 2)
        assert base_apr(1_000_000) == expected

    def test_at_cap_is_max(self):
        assert base_apr(2_500_000) == 60.0

    def test_above_cap_is_flat(self):
        assert base_apr(10_000_000) == 60.0

    def test_monotonic_non_decreasing(self):
        stakes = [1_000, 2_000, 10_000, 50_000, 250_000, 1_000_000, 2_499_999, 2_500_000, 5_000_000]
        values = [base_apr(s) for s in stakes]
        assert values == sorted(values)

    def test_concave(self):
        """Each additional 100k adds less APR than the one before."""
        first = base_apr(200_000) - base_apr(100_000)
        second = base_apr(300_000) - base_apr(200_000)
        assert first > second > 0

    def test_non_finite_is_zero(self):
        assert base_apr(float("nan")) == 0.0
        assert base_apr(float("inf")) == 0.0


class TestBonuses:
    """Independent bonus calculators."""

    def test_level_bonus_linear(self):
        assert level_bonus(0) == 0.0
        assert level_bonus(10) == 10.0
        assert level_bonus(20) == 20.0

    def test_level_bonus_capped(self):
        assert level_bonus(25) == 20.0

    def test_level_bonus_negative(self):
        assert level_bonus(-3) == 0.0

    @pytest.mark.parametrize(
        ("streak", "bonus"),
        [(0, 0.0), (1, 1.0), (6, 1.0), (7, 2.0), (13, 2.0), (14, 4.0), (29, 4.0), (30, 10.0), (365, 10.0)],
    )
    def test_streak_steps(self, streak, bonus):
        assert streak_bonus(streak) == bonus

    def test_nft_requires_holding(self):
        assert nft_bonus(False, 50_000) == 0.0

    def test_nft_requires_min_stake(self):
        assert nft_bonus(True, 500) == 0.0
        assert nft_bonus(True, 1_000) == 20.0

    def test_nft_custom_threshold(self):
        s = Settings(nft_min_stake=100_000)
        assert nft_bonus(True, 50_000, s) == 0.0
        assert nft_bonus(True, 100_000, s) == 20.0

    def test_boost(self):
        assert boost_bonus(True) == 20.0
        assert boost_bonus(False) == 0.0


class TestComposeApr:
    """Capped total and component breakdown."""

    def test_below_min_stake_earns_nothing(self):
        """Bonuses never apply below the minimum stake."""
        apr = compose_apr(500, level=20, daily_streak=30, has_nft=True, boost_in_effect=True)
        assert apr == ZERO_APR
        assert apr.total == 0.0

    def test_sum_of_components(self):
        apr = compose_apr(1_000_000, level=10, daily_streak=7, has_nft=False, boost_in_effect=False)
        assert apr.total == round(apr.base + 10.0 + 2.0, 2)
        assert apr.components() == {
            "base": apr.base,
            "level": 10.0,
            "streak": 2.0,
            "nft": 0.0,
            "boost": 0.0,
        }

    def test_everything_maxed_is_capped(self):
        apr = compose_apr(2_500_000, level=20, daily_streak=30, has_nft=True, boost_in_effect=True)
        assert apr.base + apr.level + apr.streak + apr.nft + apr.boost == 130.0
        assert apr.total == 120.0

    def test_total_never_exceeds_cap(self):
        for stake in (1_000, 10_000, 2_500_000):
            for level in (0, 20):
                apr = compose_apr(stake, level=level, daily_streak=30, has_nft=True, boost_in_effect=True)
                assert 0 <= apr.total <= 120


class TestEconomySettings:
    """Settings reject an economy whose cap does not bind."""

    def test_cap_must_be_below_component_sum(self):
        with pytest.raises(ValidationError):
            Settings(total_apr_max=130)

    def test_cap_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(total_apr_max=0)

    def test_stake_cap_above_min(self):
        with pytest.raises(ValidationError):
            Settings(min_stake=1_000, stake_cap=500)

    def test_nft_eligibility_defaults_to_min_stake(self):
        assert Settings().nft_eligibility_stake == 1_000
        assert Settings(nft_min_stake=5_000).nft_eligibility_stake == 5_000
