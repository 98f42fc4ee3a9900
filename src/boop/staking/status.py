"""Closed set of stake position states."""

from __future__ import annotations

from enum import Enum


class StakeStatus(str, Enum):
    ACTIVE = "active"
    PENDING_UNSTAKE = "pending_unstake"
    UNLOCKED = "unlocked"
    WITHDRAWN = "withdrawn"

    @property
    def is_frozen(self) -> bool:
        """Accrual stopped but the position still holds principal."""
        return self in (StakeStatus.PENDING_UNSTAKE, StakeStatus.UNLOCKED)
