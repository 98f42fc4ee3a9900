"""NFT holding lookups."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boop.db.models import NftHolding

NFT_TIERS = frozenset({1})


async def has_active_nft(db: AsyncSession, user_id: int) -> bool:
    result = await db.execute(
        select(NftHolding.id)
        .where(NftHolding.user_id == user_id, NftHolding.active.is_(True))
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def get_active_nft(db: AsyncSession, user_id: int) -> NftHolding | None:
    result = await db.execute(
        select(NftHolding)
        .where(NftHolding.user_id == user_id, NftHolding.active.is_(True))
        .order_by(NftHolding.granted_at.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


def build_holding(user_id: int, tier: int, now: datetime) -> NftHolding:
    return NftHolding(user_id=user_id, tier=tier, active=True, granted_at=now)
