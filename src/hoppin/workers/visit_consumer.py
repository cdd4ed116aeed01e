"""Visit event consumer.

Reads events from a Redis Stream and feeds them to the visit recorder. Each
message carries a JSON ``data`` field, either a visit:

  {"user_id": "...", "place_id": "...", "category_id": 2}
  {"user_id": "...", "place_id": "...", "place_types": ["cafe", "food"]}

or a place sample for dwell detection (``observed_at`` in epoch seconds):

  {"type": "place_sample", "user_id": "...", "place_id": "...",
   "place_types": ["cafe"], "observed_at": 1767225600.0}

Messages whose transaction fails stay in this consumer's pending list and are
re-read before new messages, up to ``max_deliveries`` attempts.

Usage: python -m hoppin.workers.visit_consumer
"""

from __future__ import annotations

import asyncio
import json
import logging
import signal
from typing import Any

import redis.asyncio as aioredis

from hoppin.config import Settings, get_settings
from hoppin.gamification.categories import category_for_place_types
from hoppin.gamification.reward_service import VisitRecorder
from hoppin.gamification.schemas import VisitOutcome
from hoppin.gamification.streak_service import StreakTracker
from hoppin.gamification.visit_tracker import DwellTracker
from hoppin.middleware.logging import setup_logging
from hoppin.store.client import close_store, init_store
from hoppin.store.errors import TransactionFailedError

logger = logging.getLogger(__name__)

PLACE_SAMPLE = "place_sample"


def parse_visit_event(raw_data: dict[str, Any]) -> dict[str, Any]:
    """Decode the ``data`` JSON field, falling back to the flat message fields."""
    data_str = raw_data.get("data", "{}")
    if isinstance(data_str, str):
        try:
            data = json.loads(data_str)
        except json.JSONDecodeError:
            data = dict(raw_data)
    else:
        data = dict(raw_data)
    return data if isinstance(data, dict) else {}


def _epoch_seconds(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _category_id(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


async def handle_visit_event(
    recorder: VisitRecorder,
    data: dict[str, Any],
    dwell_tracker: DwellTracker | None = None,
) -> VisitOutcome | None:
    """Handle one event.

    Visits return their outcome; events without a usable category are
    ignored. Place samples return None until the dwell time is reached.
    """
    user_id = str(data.get("user_id") or "")
    place_id = str(data.get("place_id") or "")

    if data.get("type") == PLACE_SAMPLE:
        if dwell_tracker is None:
            return VisitOutcome.IGNORED
        now = _epoch_seconds(data.get("observed_at"))
        return await dwell_tracker.observe(user_id, place_id, data.get("place_types"), now=now)

    if data.get("category_id") is not None:
        category_id = _category_id(data["category_id"])
    else:
        category_id = category_for_place_types(data.get("place_types"))

    if category_id is None:
        return VisitOutcome.IGNORED
    return await recorder.record_visit(user_id, place_id, category_id)


class VisitEventConsumer:
    """Consumer-group reader for the visit event stream."""

    def __init__(
        self,
        redis_client: aioredis.Redis,
        recorder: VisitRecorder,
        stream: str,
        group: str,
        consumer_name: str,
        dwell_tracker: DwellTracker | None = None,
        max_deliveries: int = 5,
    ) -> None:
        self._redis = redis_client
        self._recorder = recorder
        self._dwell_tracker = dwell_tracker
        self._stream = stream
        self._group = group
        self._consumer_name = consumer_name
        self._max_deliveries = max_deliveries
        self._failures: dict[str, int] = {}
        self._running = False

    async def setup_group(self) -> None:
        """Create the consumer group (idempotent)."""
        try:
            await self._redis.xgroup_create(self._stream, self._group, id="0", mkstream=True)
            logger.info("Created consumer group %s for %s", self._group, self._stream)
        except aioredis.ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise

    async def _read(self, stream_id: str, count: int, block_ms: int | None) -> list:
        events = await self._redis.xreadgroup(
            groupname=self._group,
            consumername=self._consumer_name,
            streams={self._stream: stream_id},
            count=count,
            block=block_ms,
        )
        return events or []

    async def process_batch(self, count: int = 100, block_ms: int = 5000) -> int:
        """Read and handle one batch. Returns the number of acknowledged messages.

        This consumer's own pending messages are retried first; new messages
        are read only when that backlog is empty.
        """
        events = await self._read("0", count, None)
        if not any(messages for _stream_name, messages in events):
            events = await self._read(">", count, block_ms)

        acked = 0
        for _stream_name, messages in events:
            for msg_id, raw_data in messages:
                if await self._handle(msg_id, raw_data):
                    await self._redis.xack(self._stream, self._group, msg_id)
                    acked += 1
        return acked

    async def _handle(self, msg_id: str, raw_data: dict[str, Any] | None) -> bool:
        """Process one message. Returns False when it should stay pending."""
        if raw_data is None:
            # Entry trimmed from the stream while pending.
            return True
        try:
            outcome = await handle_visit_event(
                self._recorder, parse_visit_event(raw_data), self._dwell_tracker,
            )
            logger.debug("Visit event %s -> %s", msg_id, outcome.value if outcome else "pending dwell")
        except TransactionFailedError:
            failures = self._failures.get(msg_id, 0) + 1
            if failures < self._max_deliveries:
                self._failures[msg_id] = failures
                logger.warning(
                    "Transaction failed for visit event %s (attempt %d/%d)",
                    msg_id, failures, self._max_deliveries, exc_info=True,
                )
                return False
            logger.error("Dropping visit event %s after %d failed attempts", msg_id, failures)
        except Exception:
            logger.exception("Failed to process visit event %s", msg_id)
        self._failures.pop(msg_id, None)
        return True

    async def run(self) -> None:
        """Consume until :meth:`stop` is called."""
        self._running = True
        while self._running:
            try:
                await self.process_batch()
            except aioredis.ResponseError as e:
                logger.error("XREADGROUP error: %s", e)
                await asyncio.sleep(1)

    def stop(self) -> None:
        self._running = False


async def main(settings: Settings | None = None) -> None:
    """Run the visit event consumer."""
    settings = settings or get_settings()
    setup_logging(settings)

    store = await init_store(settings)
    redis_client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )
    publisher = redis_client if settings.publish_events else None
    recorder = VisitRecorder(
        store,
        streak_tracker=StreakTracker(store, redis=publisher),
        redis=publisher,
    )
    consumer = VisitEventConsumer(
        redis_client,
        recorder,
        stream=settings.visit_stream,
        group=settings.visit_consumer_group,
        consumer_name=settings.visit_consumer_name,
        dwell_tracker=DwellTracker(recorder, settings.effective_dwell_seconds),
        max_deliveries=settings.visit_max_deliveries,
    )
    await consumer.setup_group()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, consumer.stop)

    logger.info(
        "Starting visit consumer (consumer=%s, dwell=%ss)",
        settings.visit_consumer_name, settings.effective_dwell_seconds,
    )

    try:
        await consumer.run()
    finally:
        await redis_client.aclose()
        await close_store()
        logger.info("Visit consumer stopped")


if __name__ == "__main__":
    asyncio.run(main())
