"""Boost tiers and activation rules."""

from datetime import datetime, timedelta, timezone

import pytest

from boop.db.models import Boost
from boop.errors import ErrorKind, StakingError
from boop.perks.boost_service import (
    build_boost,
    highest_boost,
    is_in_effect,
    parse_boost_kind,
    validate_activation,
)
from boop.perks.tiers import BoostKind

NOW = datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc)


def _boost(kind, starts_at=NOW, duration=None):
    kind = BoostKind(kind)
    return Boost(user_id=1, kind=kind, starts_at=starts_at, ends_at=starts_at + (duration or kind.duration))


class TestTiers:
    def test_ordering(self):
        tiers = [k.tier for k in (BoostKind.BOOST_24H, BoostKind.BOOST_72H, BoostKind.BOOST_7D, BoostKind.SUPERBOOST)]
        assert tiers == sorted(tiers)

    def test_durations(self):
        assert BoostKind.BOOST_24H.duration == timedelta(hours=24)
        assert BoostKind.BOOST_72H.duration == timedelta(hours=72)
        assert BoostKind.BOOST_7D.duration == timedelta(days=7)
        assert BoostKind.SUPERBOOST.duration == timedelta(days=14)


class TestInEffect:
    """A boost counts while starts_at <= now <= ends_at."""

    def test_window_inclusive(self):
        b = _boost(BoostKind.BOOST_24H)
        assert is_in_effect(b, NOW)
        assert is_in_effect(b, NOW + timedelta(hours=24))
        assert not is_in_effect(b, NOW + timedelta(hours=24, seconds=1))
        assert not is_in_effect(b, NOW - timedelta(seconds=1))

    def test_highest_tier_wins(self):
        low = _boost(BoostKind.BOOST_72H)
        high = _boost(BoostKind.BOOST_7D)
        assert highest_boost([low, high], NOW) is high

    def test_expired_ignored(self):
        old = _boost(BoostKind.SUPERBOOST, starts_at=NOW - timedelta(days=30))
        assert highest_boost([old], NOW) is None


class TestActivation:
    """New boosts must outrank what is in effect."""

    def test_parse_case_insensitive(self):
        assert parse_boost_kind("boost_7d") is BoostKind.BOOST_7D

    def test_parse_unknown(self):
        with pytest.raises(StakingError) as exc:
            parse_boost_kind("MEGA")
        assert exc.value.kind == ErrorKind.VALIDATION

    def test_no_existing_boost(self):
        validate_activation([], BoostKind.BOOST_24H, NOW)

    def test_upgrade_allowed(self):
        validate_activation([_boost(BoostKind.BOOST_24H)], BoostKind.SUPERBOOST, NOW)

    @pytest.mark.parametrize("kind", [BoostKind.BOOST_24H, BoostKind.BOOST_72H])
    def test_same_or_lower_rejected(self, kind):
        with pytest.raises(StakingError) as exc:
            validate_activation([_boost(BoostKind.BOOST_72H)], kind, NOW)
        assert exc.value.kind == ErrorKind.INVALID_STATE
        assert exc.value.data["activeBoost"] == "BOOST_72H"

    def test_after_expiry_allowed(self):
        validate_activation([_boost(BoostKind.SUPERBOOST)], BoostKind.BOOST_24H, NOW + timedelta(days=15))

    def test_build_boost_window(self):
        b = build_boost(7, BoostKind.SUPERBOOST, NOW)
        assert b.user_id == 7
        assert b.starts_at == NOW
        assert b.ends_at == NOW + timedelta(days=14)
