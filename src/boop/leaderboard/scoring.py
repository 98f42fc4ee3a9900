"""Leaderboard score formula, ranking and pagination."""

from __future__ import annotations

import math
from typing import Any

SCORE_FORMULA = "floor(xp + log10(totalStaked + 1) * 100)"
TOP_N = 10
MAX_PAGE_SIZE = 100


def compute_score(xp: int, total_staked: float) -> int:
    """score = floor(xp + log10(total_staked + 1) * 100)

    Negative stake is treated as zero.
    """
    stake = max(total_staked or 0.0, 0.0)
    return math.floor((xp or 0) + math.log10(stake + 1) * 100)


def rank_rows(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Order by score desc, higher xp breaking ties, and assign 1-based ranks.

    Each row needs ``score`` and ``xp``; fid is the final tie-break so the
    order is stable across requests.
    """
    ordered = sorted(rows, key=lambda r: (-r["score"], -r["xp"], r["fid"]))
    for index, row in enumerate(ordered, start=1):
        row["rank"] = index
        row["isTop10"] = index <= TOP_N
    return ordered


def paginate(rows: list[dict[str, Any]], page: int, limit: int) -> dict[str, Any]:
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)
    start = (page - 1) * limit
    chunk = rows[start:start + limit]
    return {
        "rows": chunk,
        "total": len(rows),
        "page": page,
        "limit": limit,
        "hasMore": start + limit < len(rows),
    }


def neighbors(rows: list[dict[str, Any]], fid: int, window: int = 2) -> dict[str, Any] | None:
    """The user's ranked row with up to ``window`` rows above and below."""
    index = next((i for i, r in enumerate(rows) if r["fid"] == fid), None)
    if index is None:
        return None
    row = rows[index]
    return {
        "rank": row["rank"],
        "score": row["score"],
        "total": len(rows),
        "neighbors": rows[max(index - window, 0):index + window + 1],
    }
