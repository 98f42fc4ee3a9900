"""Pydantic response models for gamification endpoints."""

from __future__ import annotations

from datetime import datetime

from boop.schemas import ApiModel


class LevelEntry(ApiModel):
    level: int
    title: str
    cumulative: int
    xp_required: int


class AllLevelsResponse(ApiModel):
    levels: list[LevelEntry]
    xp_per_claim: int
    max_level: int


class MissionEntry(ApiModel):
    id: int
    title: str
    description: str | None = None
    reward_xp: int
    is_daily: bool
    created_at: datetime


class MissionListResponse(ApiModel):
    missions: list[MissionEntry]
    total: int
