"""Visit recorder tests: daily dedupe, visit counts and badge tiers."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from hoppin.gamification.events import TIER_UP_CHANNEL
from hoppin.gamification.reward_service import VisitRecorder
from hoppin.gamification.schemas import VisitOutcome
from hoppin.store.errors import TransactionFailedError
from hoppin.store.paths import category_progress_doc, daily_visit_doc, streak_state_doc
from ledger_helpers import DAY, RecordingStore, day, seed


def _tier_up_calls(redis_mock):
    return [c for c in redis_mock.publish.await_args_list if c.args[0] == TIER_UP_CHANNEL]


class TestFirstVisit:
    """A first visit creates the marker, counts it and checks in."""

    @pytest.mark.asyncio
    async def test_new_visit(self, recorder, store):
        outcome = await recorder.record_visit("u1", "p1", 2, now=DAY)
        assert outcome is VisitOutcome.NEW_VISIT

        marker = await store.get(daily_visit_doc("u1", "2026-03-02", "p1"))
        assert marker.exists
        assert marker.get("placeId") == "p1"
        assert marker.get("categoryId") == 2
        assert isinstance(marker.get("timestamp"), str)

        progress = await store.get(category_progress_doc("u1"))
        assert progress.data == {"cat2_visits": 1}

        streak = await store.get(streak_state_doc("u1"))
        assert streak.data == {
            "currentStreak": 1,
            "bestStreak": 1,
            "lastCheckInDate": "2026-03-02",
        }

    @pytest.mark.asyncio
    async def test_receipt_includes_check_in(self, recorder):
        receipt = await recorder.record_visit_and_check_in("u1", "p1", 2, now=DAY)
        assert receipt.outcome is VisitOutcome.NEW_VISIT
        assert receipt.visits == 1
        assert receipt.old_tier == 0
        assert receipt.new_tier == 0
        assert receipt.check_in is not None
        assert receipt.check_in.after.current_streak == 1

    @pytest.mark.asyncio
    async def test_without_streak_tracker(self, store):
        recorder = VisitRecorder(store)
        assert await recorder.record_visit("u1", "p1", 2, now=DAY) is VisitOutcome.NEW_VISIT
        assert not (await store.get(streak_state_doc("u1"))).exists


class TestDeduplication:
    """At most one counted visit per (user, UTC day, place)."""

    @pytest.mark.asyncio
    async def test_same_day_is_duplicate(self, recorder, store):
        await recorder.record_visit("u1", "p1", 2, now=DAY)
        store.committed_writes.clear()

        receipt = await recorder.record_visit_and_check_in("u1", "p1", 2, now=DAY)

        assert receipt.outcome is VisitOutcome.DUPLICATE
        assert receipt.check_in is None
        assert store.committed_writes == []
        assert (await store.get(category_progress_doc("u1"))).get("cat2_visits") == 1

    @pytest.mark.asyncio
    async def test_duplicate_ignores_category_argument(self, recorder, store):
        await recorder.record_visit("u1", "p1", 2, now=DAY)
        assert await recorder.record_visit("u1", "p1", 5, now=DAY) is VisitOutcome.DUPLICATE
        assert (await store.get(category_progress_doc("u1"))).get("cat5_visits") is None

    @pytest.mark.asyncio
    async def test_next_day_counts_again(self, recorder, store):
        await recorder.record_visit("u1", "p1", 2, now=DAY)
        assert await recorder.record_visit("u1", "p1", 2, now=day(1)) is VisitOutcome.NEW_VISIT
        assert (await store.get(category_progress_doc("u1"))).get("cat2_visits") == 2

        streak = await store.get(streak_state_doc("u1"))
        assert streak.get("currentStreak") == 2

    @pytest.mark.asyncio
    async def test_different_places_same_day(self, recorder, store):
        first = await recorder.record_visit_and_check_in("u1", "p1", 2, now=DAY)
        second = await recorder.record_visit_and_check_in("u1", "p2", 2, now=DAY)

        assert second.outcome is VisitOutcome.NEW_VISIT
        assert (await store.get(category_progress_doc("u1"))).get("cat2_visits") == 2
        assert first.check_in.changed
        assert not second.check_in.changed

    @pytest.mark.asyncio
    async def test_users_are_independent(self, recorder, store):
        await recorder.record_visit("u1", "p1", 2, now=DAY)
        assert await recorder.record_visit("u2", "p1", 2, now=DAY) is VisitOutcome.NEW_VISIT
        assert (await store.get(category_progress_doc("u2"))).get("cat2_visits") == 1


class TestBadgeTiers:
    """Tier fields are written only when the tier rises."""

    @pytest.mark.asyncio
    async def test_fifth_visit_reaches_bronze(self, recorder, store):
        for offset in range(4):
            await recorder.record_visit("u1", "p1", 3, now=day(offset))
        progress = await store.get(category_progress_doc("u1"))
        assert progress.get("cat3_visits") == 4
        assert progress.get("cat3_badgeTier") is None

        receipt = await recorder.record_visit_and_check_in("u1", "p1", 3, now=day(4))
        assert receipt.tier_increased
        progress = await store.get(category_progress_doc("u1"))
        assert progress.get("cat3_visits") == 5
        assert progress.get("cat3_badgeTier") == 1

    @pytest.mark.asyncio
    async def test_crossing_threshold_writes_tier_once(self, recorder, store):
        ref = category_progress_doc("u1")
        await seed(store, ref, {"cat2_visits": 24, "cat2_badgeTier": 1})

        await recorder.record_visit("u1", "p1", 2, now=DAY)

        (write,) = store.writes_to(ref)
        assert write.merge
        assert write.data == {"cat2_visits": 25, "cat2_badgeTier": 2}

    @pytest.mark.asyncio
    async def test_no_tier_write_without_increase(self, recorder, store):
        ref = category_progress_doc("u1")
        await seed(store, ref, {"cat2_visits": 6, "cat2_badgeTier": 1})

        await recorder.record_visit("u1", "p1", 2, now=DAY)

        (write,) = store.writes_to(ref)
        assert write.data == {"cat2_visits": 7}

    @pytest.mark.asyncio
    async def test_stored_tier_never_lowered(self, recorder, store):
        ref = category_progress_doc("u1")
        await seed(store, ref, {"cat2_visits": 3, "cat2_badgeTier": 2})

        receipt = await recorder.record_visit_and_check_in("u1", "p1", 2, now=DAY)

        assert not receipt.tier_increased
        assert (await store.get(ref)).data == {"cat2_visits": 4, "cat2_badgeTier": 2}

    @pytest.mark.asyncio
    async def test_other_categories_untouched(self, recorder, store):
        ref = category_progress_doc("u1")
        await seed(store, ref, {"cat1_visits": 9, "cat1_badgeTier": 1, "displayName": "x"})

        await recorder.record_visit("u1", "p1", 2, now=DAY)

        assert (await store.get(ref)).data == {
            "cat1_visits": 9,
            "cat1_badgeTier": 1,
            "displayName": "x",
            "cat2_visits": 1,
        }


class TestInvalidInput:
    """Malformed visits are ignored without touching the store."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("user_id", "place_id", "category_id"),
        [
            ("", "p1", 2),
            ("u1", "", 2),
            ("u1", "p1", 0),
            ("u1", "p1", 9),
            ("u1", "a/b", 2),
            ("u/1", "p1", 2),
        ],
    )
    async def test_ignored(self, recorder, store, redis_mock, user_id, place_id, category_id):
        receipt = await recorder.record_visit_and_check_in(user_id, place_id, category_id, now=DAY)
        assert receipt.outcome is VisitOutcome.IGNORED
        assert receipt.check_in is None
        assert len(store) == 0
        redis_mock.publish.assert_not_awaited()


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_parallel_visits_to_different_places(self, recorder, store):
        outcomes = await asyncio.gather(
            recorder.record_visit("u1", "p1", 3, now=DAY),
            recorder.record_visit("u1", "p2", 3, now=DAY),
        )
        assert outcomes == [VisitOutcome.NEW_VISIT, VisitOutcome.NEW_VISIT]
        assert (await store.get(category_progress_doc("u1"))).get("cat3_visits") == 2

    @pytest.mark.asyncio
    async def test_parallel_visits_to_same_place(self, recorder, store):
        outcomes = await asyncio.gather(
            recorder.record_visit("u1", "p1", 3, now=DAY),
            recorder.record_visit("u1", "p1", 3, now=DAY),
        )
        assert sorted(o.value for o in outcomes) == ["duplicate", "new_visit"]
        assert (await store.get(category_progress_doc("u1"))).get("cat3_visits") == 1

    @pytest.mark.asyncio
    async def test_many_parallel_visits_reach_tier(self):
        store = RecordingStore(max_attempts=20)
        recorder = VisitRecorder(store)
        places = [f"p{i}" for i in range(5)]
        await asyncio.gather(*(recorder.record_visit("u1", p, 4, now=DAY) for p in places))
        progress = await store.get(category_progress_doc("u1"))
        assert progress.get("cat4_visits") == 5
        assert progress.get("cat4_badgeTier") == 1


class TestFailures:
    @pytest.mark.asyncio
    async def test_transaction_failure_propagates(self):
        store = MagicMock()
        store.run_transaction = AsyncMock(side_effect=TransactionFailedError("aborted"))
        tracker = AsyncMock()
        recorder = VisitRecorder(store, streak_tracker=tracker)

        with pytest.raises(TransactionFailedError):
            await recorder.record_visit("u1", "p1", 2, now=DAY)
        tracker.daily_check_in.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_streak_failure_propagates_after_visit_commit(self, store):
        tracker = AsyncMock()
        tracker.daily_check_in.side_effect = TransactionFailedError("aborted")
        recorder = VisitRecorder(store, streak_tracker=tracker)

        with pytest.raises(TransactionFailedError):
            await recorder.record_visit("u1", "p1", 2, now=DAY)
        assert (await store.get(category_progress_doc("u1"))).get("cat2_visits") == 1


class TestTierUpEvents:
    @pytest.mark.asyncio
    async def test_publishes_on_tier_up(self, recorder, store, redis_mock):
        await seed(store, category_progress_doc("u1"), {"cat6_visits": 4})

        await recorder.record_visit("u1", "p1", 6, now=DAY)

        (call,) = _tier_up_calls(redis_mock)
        payload = json.loads(call.args[1])
        assert payload == {
            "user_id": "u1",
            "category_id": 6,
            "old_tier": 0,
            "new_tier": 1,
            "tier_name": "Bronze",
        }

    @pytest.mark.asyncio
    async def test_no_event_without_tier_up(self, recorder, redis_mock):
        await recorder.record_visit("u1", "p1", 6, now=DAY)
        assert _tier_up_calls(redis_mock) == []

    @pytest.mark.asyncio
    async def test_publish_failure_does_not_fail_visit(self, recorder, store, redis_mock):
        redis_mock.publish.side_effect = ConnectionError("redis down")
        await seed(store, category_progress_doc("u1"), {"cat6_visits": 4})

        assert await recorder.record_visit("u1", "p1", 6, now=DAY) is VisitOutcome.NEW_VISIT
        assert (await store.get(category_progress_doc("u1"))).get("cat6_badgeTier") == 1
