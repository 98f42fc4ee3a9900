"""Staking API endpoints: positions, claims and withdrawals.

Domain errors propagate to the global StakingError handler.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from boop.dependencies import get_db, get_redis_dep
from boop.staking import service
from boop.staking.schemas import (
    ClaimResponse,
    CreateStakeRequest,
    FidRequest,
    RewardWithdrawalResponse,
    StakeListResponse,
    StakeResponse,
    StatusResponse,
    WithdrawStakeResponse,
)

router = APIRouter(prefix="/api/v1", tags=["Staking"])


@router.get("/users/{fid}/status", response_model=StatusResponse)
async def get_status(fid: int, db: AsyncSession = Depends(get_db)):
    """APR breakdown, balances and claim readiness."""
    return StatusResponse(**await service.get_status(db, fid))


@router.get("/users/{fid}/stakes", response_model=StakeListResponse)
async def list_stakes(fid: int, db: AsyncSession = Depends(get_db)):
    positions = await service.list_stakes(db, fid)
    return StakeListResponse(
        stakes=[StakeResponse.model_validate(p) for p in positions],
        total=len(positions),
    )


@router.post("/stakes", response_model=StakeResponse, status_code=201)
async def create_stake(
    body: CreateStakeRequest,
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    position = await service.create_stake(db, redis, body.fid, body.amount)
    return StakeResponse.model_validate(position)


@router.post("/stakes/{stake_id}/unstake", response_model=StakeResponse)
async def request_unstake(
    stake_id: int,
    body: FidRequest,
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    """Start the unlock period for an active position."""
    position = await service.request_unstake(db, redis, body.fid, stake_id)
    return StakeResponse.model_validate(position)


@router.post("/stakes/{stake_id}/withdraw", response_model=WithdrawStakeResponse)
async def withdraw_stake(
    stake_id: int,
    body: FidRequest,
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    """Release the principal of an unlocked position."""
    return WithdrawStakeResponse(**await service.withdraw_stake(db, redis, body.fid, stake_id))


@router.post("/rewards/claim", response_model=ClaimResponse)
async def claim(
    body: FidRequest,
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    return ClaimResponse(**await service.claim(db, redis, body.fid))


@router.post("/rewards/withdraw", response_model=RewardWithdrawalResponse)
async def withdraw_rewards(
    body: FidRequest,
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
):
    return RewardWithdrawalResponse(**await service.withdraw_rewards(db, redis, body.fid))
