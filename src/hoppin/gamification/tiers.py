"""Category badge tiers and their visit thresholds.

These values MUST match the app's badge artwork order:
  0 none, 1 Bronze, 2 Silver, 3 Gold, 4 Diamond, 5 Platinum
"""

from __future__ import annotations

REWARD_THRESHOLDS: tuple[int, ...] = (5, 25, 50, 100, 250)

TIER_NAMES: tuple[str, ...] = ("None", "Bronze", "Silver", "Gold", "Diamond", "Platinum")

MAX_TIER = len(REWARD_THRESHOLDS)


def tier_for_visits(visits: int) -> int:
    """Highest tier whose threshold ``visits`` has reached, else 0."""
    tier = 0
    for index, threshold in enumerate(REWARD_THRESHOLDS):
        if visits >= threshold:
            tier = index + 1
        else:
            break
    return tier


def tier_name(tier: int) -> str:
    if not 0 <= tier <= MAX_TIER:
        msg = f"Tier out of range: {tier}"
        raise ValueError(msg)
    return TIER_NAMES[tier]


def tier_info(visits: int) -> dict:
    """Compute tier info for a visit count.

    At the top tier ``next_tier`` equals ``tier`` and ``visits_to_next`` is 0.
    """
    tier = tier_for_visits(visits)
    if tier == MAX_TIER:
        next_tier = MAX_TIER
        next_threshold = REWARD_THRESHOLDS[-1]
    else:
        next_tier = tier + 1
        next_threshold = REWARD_THRESHOLDS[tier]

    return {
        "tier": tier,
        "tier_name": TIER_NAMES[tier],
        "next_tier": next_tier,
        "next_tier_name": TIER_NAMES[next_tier],
        "next_threshold": next_threshold,
        "visits_to_next": max(next_threshold - visits, 0),
    }
