"""XP grant service with idempotency and level-up detection."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from boop.db.models import User, XPLedger
from boop.gamification.level_thresholds import compute_level

logger = logging.getLogger(__name__)


async def grant_xp(
    db: AsyncSession,
    user: User,
    amount: int,
    source: str,
    description: str,
    idempotency_key: str,
    now: datetime,
) -> int | None:
    """Grant XP to a user inside the caller's transaction.

    1. Insert into xp_ledger
    2. Update users.xp
    3. Recompute level from xp (never lowering it)

    Returns the previous level, or None when idempotency_key was already used.
    Does not commit.
    """
    existing = await db.execute(
        select(XPLedger.id).where(XPLedger.idempotency_key == idempotency_key)
    )
    if existing.scalar_one_or_none() is not None:
        return None

    db.add(XPLedger(
        user_id=user.id,
        amount=amount,
        source=source,
        description=description,
        idempotency_key=idempotency_key,
        created_at=now,
    ))

    old_level = user.level or 0
    user.xp = (user.xp or 0) + amount
    level_info = compute_level(user.xp)
    user.level = max(old_level, level_info["level"])
    user.updated_at = now

    if user.level > old_level:
        logger.info("User %s levelled up: %d -> %d", user.id, old_level, user.level)

    return old_level


async def xp_since(db: AsyncSession, since: datetime) -> dict[int, int]:
    """Sum of XP granted per user since the given instant."""
    result = await db.execute(
        select(XPLedger.user_id, func.sum(XPLedger.amount).label("xp"))
        .where(XPLedger.created_at >= since)
        .group_by(XPLedger.user_id)
    )
    return {row.user_id: int(row.xp or 0) for row in result}
