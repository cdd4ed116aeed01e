"""Shared FastAPI dependencies wiring the ledger services to the store."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from hoppin.gamification.auto_check_in import AutoCheckIn
from hoppin.gamification.reward_service import VisitRecorder
from hoppin.gamification.streak_service import StreakTracker
from hoppin.redis_client import get_redis_or_none
from hoppin.store.base import RecordStore
from hoppin.store.client import get_store


def get_streak_tracker(store: RecordStore = Depends(get_store)) -> StreakTracker:
    return StreakTracker(store, redis=get_redis_or_none())


def get_visit_recorder(
    store: RecordStore = Depends(get_store),
    tracker: StreakTracker = Depends(get_streak_tracker),
) -> VisitRecorder:
    return VisitRecorder(store, streak_tracker=tracker, redis=get_redis_or_none())


@lru_cache
def auto_check_in_attempts() -> set[tuple[str, str]]:
    """Process-wide (user_id, date) keys already auto-checked-in."""
    return set()


def get_auto_check_in(tracker: StreakTracker = Depends(get_streak_tracker)) -> AutoCheckIn:
    return AutoCheckIn(tracker, attempted=auto_check_in_attempts())
