"""Pydantic models for boost and NFT endpoints."""

from __future__ import annotations

from datetime import datetime

from boop.perks.tiers import BoostKind
from boop.schemas import ApiModel


class ActivateBoostRequest(ApiModel):
    fid: int
    kind: str


class BoostResponse(ApiModel):
    id: int
    kind: BoostKind
    starts_at: datetime
    ends_at: datetime


class GrantNftRequest(ApiModel):
    fid: int
    tier: int = 1


class NftResponse(ApiModel):
    id: int
    tier: int
    active: bool
    granted_at: datetime
    created: bool
