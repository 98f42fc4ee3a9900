"""Pydantic response models for leaderboard endpoints."""

from __future__ import annotations

from boop.schemas import ApiModel


class LeaderboardRow(ApiModel):
    rank: int
    fid: int
    username: str
    xp: int
    level: int
    daily_streak: int
    total_staked: float
    score: int
    is_me: bool = False
    is_top10: bool = False


class MyRankResponse(ApiModel):
    rank: int
    score: int
    total: int
    neighbors: list[LeaderboardRow]
    mode: str | None = None
    formula: str | None = None


class LeaderboardResponse(ApiModel):
    mode: str
    rows: list[LeaderboardRow]
    total: int
    page: int
    limit: int
    has_more: bool
    my_rank: MyRankResponse | None = None
    formula: str
