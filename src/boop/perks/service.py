"""Boost activation and NFT grants.

Both change an APR input, so the user's active positions are checkpointed
at the old APR inside the same transaction before the perk lands.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from boop.config import Settings
from boop.db.models import Boost, NftHolding
from boop.errors import ErrorKind, StakingError
from boop.events import publish_event
from boop.perks.boost_service import build_boost, parse_boost_kind, validate_activation
from boop.perks.nft_service import NFT_TIERS, build_holding, get_active_nft
from boop.staking.accrual import checkpoint_active
from boop.staking.context import load_context
from boop.staking.service import unit_of_work
from boop.timeutils import utcnow

logger = logging.getLogger(__name__)


async def activate_boost(
    db: AsyncSession,
    redis: object | None,
    fid: int,
    kind: str,
    now: datetime | None = None,
    settings: Settings | None = None,
) -> Boost:
    """Start a boost now. Rejected unless it outranks every boost in effect."""
    now = now or utcnow()
    boost_kind = parse_boost_kind(kind)

    async with unit_of_work(db, "activate_boost", fid):
        ctx = await load_context(db, fid, now, for_update=True, settings=settings)
        validate_activation(ctx.boosts, boost_kind, now)

        checkpoint_active(ctx.active_positions, ctx.timeline(), now)
        boost = build_boost(ctx.user.id, boost_kind, now)
        db.add(boost)
        await db.flush()

    logger.info("Boost %s activated for fid %d until %s", boost_kind.value, fid, boost.ends_at)
    await publish_event(redis, "boost_activated", {
        "fid": fid,
        "kind": boost_kind.value,
        "ends_at": boost.ends_at,
    })
    return boost


async def grant_nft(
    db: AsyncSession,
    redis: object | None,
    fid: int,
    tier: int = 1,
    now: datetime | None = None,
    settings: Settings | None = None,
) -> tuple[NftHolding, bool]:
    """Record NFT ownership. Returns (holding, created); re-granting is a no-op."""
    now = now or utcnow()
    if tier not in NFT_TIERS:
        raise StakingError(ErrorKind.VALIDATION, f"Unknown NFT tier {tier}", {"tiers": sorted(NFT_TIERS)})

    async with unit_of_work(db, "grant_nft", fid):
        ctx = await load_context(db, fid, now, for_update=True, settings=settings)
        existing = await get_active_nft(db, ctx.user.id)
        if existing is not None:
            return existing, False

        checkpoint_active(ctx.active_positions, ctx.timeline(), now)
        holding = build_holding(ctx.user.id, tier, now)
        db.add(holding)
        await db.flush()

    logger.info("NFT tier %d granted to fid %d", tier, fid)
    await publish_event(redis, "nft_granted", {"fid": fid, "tier": tier})
    return holding, True
