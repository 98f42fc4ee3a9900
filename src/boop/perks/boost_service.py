"""Boost lookups and activation rules."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boop.db.models import Boost
from boop.errors import ErrorKind, StakingError
from boop.perks.tiers import BoostKind
from boop.timeutils import ensure_utc


def is_in_effect(boost: Boost, now: datetime) -> bool:
    """A boost is in effect iff starts_at <= now <= ends_at."""
    starts_at = ensure_utc(boost.starts_at)
    ends_at = ensure_utc(boost.ends_at)
    if starts_at is None or ends_at is None:
        return False
    return starts_at <= now <= ends_at


def highest_boost(boosts: Iterable[Boost], now: datetime) -> Boost | None:
    """The highest-tier boost in effect, latest expiry breaking ties."""
    live = [b for b in boosts if is_in_effect(b, now)]
    if not live:
        return None
    return max(live, key=lambda b: (BoostKind(b.kind).tier, ensure_utc(b.ends_at)))


async def get_user_boosts(db: AsyncSession, user_id: int, since: datetime) -> list[Boost]:
    """Boosts still running at or after since (some may start in the future)."""
    result = await db.execute(
        select(Boost)
        .where(Boost.user_id == user_id, Boost.ends_at >= since)
        .order_by(Boost.ends_at.desc())
    )
    return list(result.scalars().all())


def parse_boost_kind(kind: str) -> BoostKind:
    try:
        return BoostKind(str(kind).upper())
    except ValueError as e:
        valid = ", ".join(k.value for k in BoostKind)
        raise StakingError(ErrorKind.VALIDATION, f"Invalid boost kind. Use one of: {valid}") from e


def validate_activation(existing: Iterable[Boost], kind: BoostKind, now: datetime) -> None:
    """A new boost must outrank every boost already in effect."""
    current = highest_boost(existing, now)
    if current is not None and BoostKind(current.kind).tier >= kind.tier:
        ends_at = ensure_utc(current.ends_at)
        raise StakingError(
            ErrorKind.INVALID_STATE,
            "Boost already active",
            {"activeBoost": BoostKind(current.kind).value, "endsAt": ends_at.isoformat()},
        )


def build_boost(user_id: int, kind: BoostKind, now: datetime) -> Boost:
    return Boost(user_id=user_id, kind=kind, starts_at=now, ends_at=now + kind.duration)
