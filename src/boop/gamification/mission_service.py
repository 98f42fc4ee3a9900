"""Mission catalog lookups."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boop.db.models import Mission


async def list_missions(db: AsyncSession, daily_only: bool = False) -> list[Mission]:
    """All missions, oldest first."""
    stmt = select(Mission).order_by(Mission.created_at.asc(), Mission.id.asc())
    if daily_only:
        stmt = stmt.where(Mission.is_daily.is_(True))
    result = await db.execute(stmt)
    return list(result.scalars().all())
