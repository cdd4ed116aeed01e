"""Category rewards: deduplicated daily visits, visit counts and badge tiers.

For a given (user, UTC date, place) a visit is counted at most once. A new
visit atomically:
  1. creates users/{uid}/gamificationDailyVisits/{date}/places/{placeId}
  2. increments catN_visits in users/{uid}/gamification/categoryProgress
  3. raises catN_badgeTier when the new count crosses a threshold

After that transaction commits, the streak tracker runs its own check-in
transaction. The two are not atomic together: a crash in between leaves the
visit counted and the streak untouched for the day.
"""

from __future__ import annotations

import logging
from datetime import datetime

from hoppin.gamification.categories import is_valid_category
from hoppin.gamification.dates import today_key
from hoppin.gamification.events import publish_tier_up
from hoppin.gamification.schemas import VisitOutcome, VisitReceipt, tier_field, visits_field
from hoppin.gamification.streak_service import StreakTracker
from hoppin.gamification.tiers import tier_for_visits
from hoppin.store.base import RecordStore, Transaction
from hoppin.store.documents import SERVER_TIMESTAMP, is_valid_segment
from hoppin.store.paths import category_progress_doc, daily_visit_doc

logger = logging.getLogger(__name__)


class VisitRecorder:
    """Records place visits and keeps category badge tiers in step with counts."""

    def __init__(
        self,
        store: RecordStore,
        streak_tracker: StreakTracker | None = None,
        redis: object | None = None,
    ) -> None:
        self._store = store
        self._streak_tracker = streak_tracker
        self._redis = redis

    async def record_visit(
        self,
        user_id: str,
        place_id: str,
        category_id: int,
        now: datetime | None = None,
    ) -> VisitOutcome:
        """Record a visit for today (UTC). Returns the outcome only."""
        receipt = await self.record_visit_and_check_in(user_id, place_id, category_id, now=now)
        return receipt.outcome

    async def record_visit_and_check_in(
        self,
        user_id: str,
        place_id: str,
        category_id: int,
        now: datetime | None = None,
    ) -> VisitReceipt:
        """Record a visit and, if it is new today, run the daily check-in.

        Malformed calls (empty ids, category outside 1..8) are ignored
        without touching the store. Raises TransactionFailedError when the
        visit transaction cannot commit.
        """
        if not _is_valid_visit(user_id, place_id, category_id):
            logger.debug(
                "Ignoring malformed visit user=%r place=%r category=%r",
                user_id, place_id, category_id,
            )
            return VisitReceipt(outcome=VisitOutcome.IGNORED)

        date_str = today_key(now)
        daily_ref = daily_visit_doc(user_id, date_str, place_id)
        progress_ref = category_progress_doc(user_id)
        v_field = visits_field(category_id)
        t_field = tier_field(category_id)

        async def record(tx: Transaction) -> VisitReceipt:
            daily_snap = await tx.get(daily_ref)
            if daily_snap.exists:
                return VisitReceipt(outcome=VisitOutcome.DUPLICATE, category_id=category_id)

            progress_snap = await tx.get(progress_ref)
            old_visits = int(progress_snap.get(v_field) or 0)
            old_tier = int(progress_snap.get(t_field) or 0)
            new_visits = old_visits + 1
            new_tier = tier_for_visits(new_visits)

            updates: dict[str, int] = {v_field: new_visits}
            if new_tier > old_tier:
                updates[t_field] = new_tier

            tx.set(
                daily_ref,
                {
                    "placeId": place_id,
                    "categoryId": category_id,
                    "timestamp": SERVER_TIMESTAMP,
                },
                merge=True,
            )
            tx.set(progress_ref, updates, merge=True)

            return VisitReceipt(
                outcome=VisitOutcome.NEW_VISIT,
                category_id=category_id,
                visits=new_visits,
                old_tier=old_tier,
                new_tier=max(new_tier, old_tier),
            )

        receipt = await self._store.run_transaction(record)

        if receipt.outcome is not VisitOutcome.NEW_VISIT:
            logger.debug("Duplicate visit user=%s place=%s date=%s", user_id, place_id, date_str)
            return receipt

        logger.info(
            "Recorded visit user=%s place=%s category=%d visits=%d",
            user_id, place_id, category_id, receipt.visits,
        )

        if self._streak_tracker is not None:
            receipt.check_in = await self._streak_tracker.daily_check_in(user_id, now=now)

        if receipt.tier_increased:
            logger.info(
                "Badge tier up user=%s category=%d %d -> %d",
                user_id, category_id, receipt.old_tier, receipt.new_tier,
            )
            await publish_tier_up(
                self._redis, user_id, category_id, receipt.old_tier, receipt.new_tier,
            )

        return receipt


def _is_valid_visit(user_id: str, place_id: str, category_id: int) -> bool:
    return (
        bool(user_id)
        and is_valid_segment(user_id)
        and bool(place_id)
        and is_valid_segment(place_id)
        and is_valid_category(category_id)
    )
