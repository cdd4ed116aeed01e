"""Automatic daily check-in, attempted once per (user, UTC day)."""

from __future__ import annotations

from datetime import datetime

from hoppin.gamification.dates import today_key
from hoppin.gamification.schemas import CheckInResult
from hoppin.gamification.streak_service import StreakTracker


class AutoCheckIn:
    """Guards ``daily_check_in`` so app launches only hit the store once a day.

    ``attempted`` may be shared between instances (one per request) to keep
    the guard process-wide.
    """

    def __init__(self, tracker: StreakTracker, attempted: set[tuple[str, str]] | None = None) -> None:
        self._tracker = tracker
        self._attempted = attempted if attempted is not None else set()

    async def ensure_today(self, user_id: str, now: datetime | None = None) -> CheckInResult | None:
        """Run today's check-in unless it was already attempted; returns None if skipped."""
        today = today_key(now)
        key = (user_id, today)
        if key in self._attempted:
            return None

        # Drop keys from previous days so the guard stays bounded.
        stale = {k for k in self._attempted if k[1] != today}
        self._attempted.difference_update(stale)
        self._attempted.add(key)
        try:
            return await self._tracker.daily_check_in(user_id, now=now)
        except Exception:
            self._attempted.discard(key)
            raise
