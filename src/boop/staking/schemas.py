"""Pydantic request and response models for staking endpoints."""

from __future__ import annotations

from datetime import datetime

from boop.schemas import ApiModel
from boop.staking.status import StakeStatus


# --- Requests ---


class FidRequest(ApiModel):
    fid: int


class CreateStakeRequest(ApiModel):
    fid: int
    amount: float


# --- Positions ---


class StakeResponse(ApiModel):
    id: int
    principal: float
    status: StakeStatus
    started_at: datetime
    last_accrual_at: datetime
    unlock_at: datetime | None = None
    unclaimed_reward: float = 0.0
    withdrawn_at: datetime | None = None


class StakeListResponse(ApiModel):
    stakes: list[StakeResponse]
    total: int


class WithdrawStakeResponse(ApiModel):
    stake_id: int
    principal: float
    amount: float
    fee: float
    reward_credited: float = 0.0


# --- Status ---


class AprComponents(ApiModel):
    base: float
    level: float
    streak: float
    nft: float
    boost: float


class StatusResponse(ApiModel):
    fid: int
    total_apr: float
    components: AprComponents
    total_staked: float
    total_unclaimed: float
    can_claim: bool
    next_claim_in_seconds: int
    withdrawable_balance: float
    xp: int
    level: int
    level_title: str
    daily_streak: int
    streak_alive: bool
    score: int
    has_nft: bool
    active_boost: str | None = None
    boost_ends_at: datetime | None = None


# --- Rewards ---


class ClaimResponse(ApiModel):
    gross: float
    fee: float
    net: float
    new_xp: int
    new_level: int
    new_streak: int
    withdrawable_balance: float
    apr: float
    next_claim_in_seconds: int


class RewardWithdrawalResponse(ApiModel):
    gross: float
    fee: float
    net: float
