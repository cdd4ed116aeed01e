"""Dwell-based visit detection.

Location samples are resolved to a "most likely current place" upstream;
each one is fed to :meth:`DwellTracker.observe`. A visit is recorded once a
user has stayed at the same place for ``dwell_seconds``, and only once per
stay. Each user has an independent dwell window.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass

from hoppin.gamification.categories import category_for_place_types
from hoppin.gamification.reward_service import VisitRecorder
from hoppin.gamification.schemas import VisitOutcome

logger = logging.getLogger(__name__)


@dataclass
class DwellCandidate:
    user_id: str
    place_id: str
    category_id: int
    first_seen_at: float
    has_recorded: bool = False


class DwellTracker:
    """Tracks each user's current place and records a visit after the dwell time.

    Sample times are epoch seconds, so samples stamped by the device and
    samples stamped on arrival can be mixed.
    """

    def __init__(self, recorder: VisitRecorder, dwell_seconds: float) -> None:
        self._recorder = recorder
        self._dwell_seconds = dwell_seconds
        self._candidates: dict[str, DwellCandidate] = {}

    def candidate(self, user_id: str) -> DwellCandidate | None:
        return self._candidates.get(user_id)

    def reset(self, user_id: str | None = None) -> None:
        """Forget one user's window, or every window when no user is given."""
        if user_id is None:
            self._candidates.clear()
        else:
            self._candidates.pop(user_id, None)

    async def observe(
        self,
        user_id: str,
        place_id: str,
        place_types: Iterable[str] | None,
        now: float | None = None,
    ) -> VisitOutcome | None:
        """Feed one place sample. Returns the visit outcome when a visit was recorded."""
        if now is None:
            now = time.time()

        category_id = category_for_place_types(place_types)
        if category_id is None or not place_id or not user_id:
            return None

        current = self._candidates.get(user_id)
        if current is None or current.place_id != place_id:
            self._candidates[user_id] = DwellCandidate(
                user_id=user_id,
                place_id=place_id,
                category_id=category_id,
                first_seen_at=now,
            )
            logger.debug("New dwell candidate user=%s place=%s category=%d", user_id, place_id, category_id)
            return None

        if current.has_recorded:
            return None

        elapsed = now - current.first_seen_at
        if elapsed < self._dwell_seconds:
            return None

        current.has_recorded = True
        logger.debug(
            "Dwell reached user=%s place=%s category=%d elapsed=%.1fs",
            user_id, current.place_id, current.category_id, elapsed,
        )
        return await self._recorder.record_visit(user_id, current.place_id, current.category_id)
