"""Boost tiers: ordering and durations."""

from __future__ import annotations

from datetime import timedelta
from enum import Enum


class BoostKind(str, Enum):
    BOOST_24H = "BOOST_24H"
    BOOST_72H = "BOOST_72H"
    BOOST_7D = "BOOST_7D"
    SUPERBOOST = "SUPERBOOST"

    @property
    def tier(self) -> int:
        return BOOST_TIERS[self]

    @property
    def duration(self) -> timedelta:
        return BOOST_DURATIONS[self]


BOOST_TIERS: dict[BoostKind, int] = {
    BoostKind.BOOST_24H: 1,
    BoostKind.BOOST_72H: 2,
    BoostKind.BOOST_7D: 3,
    BoostKind.SUPERBOOST: 4,
}

BOOST_DURATIONS: dict[BoostKind, timedelta] = {
    BoostKind.BOOST_24H: timedelta(hours=24),
    BoostKind.BOOST_72H: timedelta(hours=72),
    BoostKind.BOOST_7D: timedelta(days=7),
    BoostKind.SUPERBOOST: timedelta(days=14),
}
