"""Level thresholds and computation.

Levels run 0..20; level 20 is reached at 5,250 XP (210 daily claims at
25 XP). These values MUST match the mini-app level bar.
"""

from __future__ import annotations

LEVEL_THRESHOLDS: list[dict] = [
    {"level": 0, "title": "Newcomer", "cumulative": 0},
    {"level": 1, "title": "Holder", "cumulative": 263},
    {"level": 2, "title": "Staker", "cumulative": 525},
    {"level": 3, "title": "Yield Seeker", "cumulative": 788},
    {"level": 4, "title": "Boop Apprentice", "cumulative": 1050},
    {"level": 5, "title": "Steady Hand", "cumulative": 1313},
    {"level": 6, "title": "Compounder", "cumulative": 1575},
    {"level": 7, "title": "Daily Devotee", "cumulative": 1838},
    {"level": 8, "title": "Vault Keeper", "cumulative": 2100},
    {"level": 9, "title": "APR Hunter", "cumulative": 2363},
    {"level": 10, "title": "Boop Veteran", "cumulative": 2625},
    {"level": 11, "title": "Lockup Legend", "cumulative": 2888},
    {"level": 12, "title": "Streak Runner", "cumulative": 3150},
    {"level": 13, "title": "Yield Farmer", "cumulative": 3413},
    {"level": 14, "title": "Diamond Paws", "cumulative": 3675},
    {"level": 15, "title": "Boop Baron", "cumulative": 3938},
    {"level": 16, "title": "Reward Whale", "cumulative": 4200},
    {"level": 17, "title": "Vault Architect", "cumulative": 4463},
    {"level": 18, "title": "Boop Sage", "cumulative": 4725},
    {"level": 19, "title": "Grand Staker", "cumulative": 4988},
    {"level": 20, "title": "Boop Legend", "cumulative": 5250},
]

MAX_LEVEL = LEVEL_THRESHOLDS[-1]["level"]


def compute_level(total_xp: int) -> dict:
    """Compute level info from total XP."""
    total_xp = max(0, int(total_xp or 0))
    idx = 0
    for i, entry in enumerate(LEVEL_THRESHOLDS):
        if total_xp >= entry["cumulative"]:
            idx = i

    current = LEVEL_THRESHOLDS[idx]
    next_level = LEVEL_THRESHOLDS[min(idx + 1, len(LEVEL_THRESHOLDS) - 1)]

    xp_into_level = total_xp - current["cumulative"]
    xp_for_level = next_level["cumulative"] - current["cumulative"]

    # At max level, avoid division by zero
    if xp_for_level == 0:
        xp_for_level = 1

    return {
        "level": current["level"],
        "title": current["title"],
        "xp_into_level": xp_into_level,
        "xp_for_level": xp_for_level,
        "next_level": next_level["level"],
        "next_title": next_level["title"],
    }
