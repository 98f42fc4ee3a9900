"""UTC time helpers shared by the engine and services."""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (some drivers drop tzinfo on read)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def month_start(now: datetime) -> datetime:
    """First instant of the calendar month containing now, in UTC."""
    now = ensure_utc(now)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def get_month_key(now: datetime) -> str:
    """Month key e.g. '2026-10'."""
    return ensure_utc(now).strftime("%Y-%m")
