"""Daily check-in streaks: consecutive UTC days with at least one check-in."""

from __future__ import annotations

import logging
from datetime import datetime

from hoppin.gamification.dates import today_and_yesterday_keys
from hoppin.gamification.events import publish_streak_update
from hoppin.gamification.schemas import CheckInResult, StreakState
from hoppin.store.base import RecordStore, Transaction
from hoppin.store.paths import streak_state_doc

logger = logging.getLogger(__name__)


def advance_streak(state: StreakState, today: str, yesterday: str) -> StreakState:
    """Apply one check-in on ``today`` to ``state``.

    - already checked in today: unchanged
    - checked in yesterday: streak continues
    - anything else (never, or a gap): streak restarts at 1
    """
    last = state.last_check_in_date
    if last == today:
        return state
    if last == yesterday:
        current = state.current_streak + 1
    else:
        current = 1
    return StreakState(
        current_streak=current,
        best_streak=max(state.best_streak, current),
        last_check_in_date=today,
    )


class StreakTracker:
    """Transactional, idempotent daily check-in."""

    def __init__(self, store: RecordStore, redis: object | None = None) -> None:
        self._store = store
        self._redis = redis

    async def daily_check_in(self, user_id: str, now: datetime | None = None) -> CheckInResult:
        """Check ``user_id`` in for the current UTC day. Safe to call any time."""
        if not user_id:
            msg = "user_id must not be empty"
            raise ValueError(msg)

        today, yesterday = today_and_yesterday_keys(now)
        ref = streak_state_doc(user_id)

        async def check_in(tx: Transaction) -> CheckInResult:
            snap = await tx.get(ref)
            before = StreakState.from_document(snap.data)
            after = advance_streak(before, today, yesterday)
            if after != before:
                tx.set(ref, after.to_fields(), merge=True)
            return CheckInResult(before=before, after=after)

        result = await self._store.run_transaction(check_in)

        if result.changed:
            logger.info(
                "Streak check-in for %s: %d -> %d (best %d)",
                user_id,
                result.before.current_streak,
                result.after.current_streak,
                result.after.best_streak,
            )
            await publish_streak_update(self._redis, user_id, result)
        return result

    async def get_streak(self, user_id: str) -> StreakState:
        """Read the stored streak without checking in."""
        snap = await self._store.get(streak_state_doc(user_id))
        return StreakState.from_document(snap.data)
