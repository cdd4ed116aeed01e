"""Post-commit gamification events over Redis pub/sub.

Publishing is best effort: the ledger state is already committed, so a
failure is logged and never raised to the caller.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from hoppin.gamification.tiers import tier_name

if TYPE_CHECKING:
    from hoppin.gamification.schemas import CheckInResult

logger = logging.getLogger(__name__)

TIER_UP_CHANNEL = "pubsub:badge_tier_up"
STREAK_UPDATE_CHANNEL = "pubsub:streak_update"


async def publish_tier_up(
    redis: object | None,
    user_id: str,
    category_id: int,
    old_tier: int,
    new_tier: int,
) -> None:
    """Announce that a category badge tier increased."""
    if redis is None:
        return
    try:
        await redis.publish(  # type: ignore[union-attr]
            TIER_UP_CHANNEL,
            json.dumps({
                "user_id": user_id,
                "category_id": category_id,
                "old_tier": old_tier,
                "new_tier": new_tier,
                "tier_name": tier_name(new_tier),
            }),
        )
    except Exception:
        logger.warning("Failed to publish badge_tier_up event", exc_info=True)


async def publish_streak_update(
    redis: object | None,
    user_id: str,
    result: CheckInResult,
) -> None:
    """Announce a streak continuation or restart."""
    if redis is None:
        return
    before, after = result.before, result.after
    event = "streak_continued" if after.current_streak > 1 else "streak_started"
    if before.current_streak > 0 and after.current_streak == 1:
        event = "streak_reset"
    try:
        await redis.publish(  # type: ignore[union-attr]
            STREAK_UPDATE_CHANNEL,
            json.dumps({
                "user_id": user_id,
                "event": event,
                "current_streak": after.current_streak,
                "best_streak": after.best_streak,
                "previous_streak": before.current_streak,
            }),
        )
    except Exception:
        logger.warning("Failed to publish streak_update event", exc_info=True)
