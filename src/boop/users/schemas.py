"""Pydantic models for user endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from boop.schemas import ApiModel


class InitUserRequest(ApiModel):
    fid: int
    username: str | None = Field(default=None, max_length=64)


class UserResponse(ApiModel):
    fid: int
    username: str
    xp: int
    level: int
    daily_streak: int
    withdrawable_balance: float
    last_claim_at: datetime | None = None
    created: bool = False
