"""Daily claim streak tracking."""

from __future__ import annotations

from datetime import datetime

from boop.timeutils import ensure_utc


def next_streak(
    current_streak: int,
    last_claim_at: datetime | None,
    now: datetime,
    window_seconds: int,
) -> int:
    """Streak after a claim at now.

    Continues when the previous claim was at most window_seconds ago,
    otherwise restarts at 1. A first claim starts the streak at 1.
    """
    last = ensure_utc(last_claim_at)
    if last is None:
        return 1
    gap = (now - last).total_seconds()
    if gap <= window_seconds:
        return max(0, current_streak or 0) + 1
    return 1


def is_streak_alive(last_claim_at: datetime | None, now: datetime, window_seconds: int) -> bool:
    """Whether a claim right now would still extend the streak."""
    last = ensure_utc(last_claim_at)
    return last is not None and (now - last).total_seconds() <= window_seconds
