"""Boost and NFT endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from boop.dependencies import get_db, get_redis_dep
from boop.perks import service
from boop.perks.schemas import ActivateBoostRequest, BoostResponse, GrantNftRequest, NftResponse

router = APIRouter(prefix="/api/v1", tags=["Perks"])


@router.post("/boosts", response_model=BoostResponse, status_code=201)
async def activate_boost(
    body: ActivateBoostRequest,
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    """Activate a time-limited APR boost."""
    boost = await service.activate_boost(db, redis, body.fid, body.kind)
    return BoostResponse.model_validate(boost)


@router.post("/nfts/grant", response_model=NftResponse)
async def grant_nft(
    body: GrantNftRequest,
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    """Record NFT ownership reported by the settlement side."""
    holding, created = await service.grant_nft(db, redis, body.fid, body.tier)
    return NftResponse(
        id=holding.id,
        tier=holding.tier,
        active=holding.active,
        granted_at=holding.granted_at,
        created=created,
    )
