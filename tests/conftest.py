"""Shared test fixtures."""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Generator
from unittest.mock import AsyncMock

os.environ["HOPPIN_STORE_BACKEND"] = "memory"
os.environ["HOPPIN_PUBLISH_EVENTS"] = "false"
os.environ["HOPPIN_JWT_SECRET"] = "test-secret-key-with-at-least-32-bytes!!"
os.environ["HOPPIN_LOG_FORMAT"] = "console"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from hoppin.config import get_settings  # noqa: E402

get_settings.cache_clear()

from hoppin.gamification.reward_service import VisitRecorder  # noqa: E402
from hoppin.gamification.streak_service import StreakTracker  # noqa: E402
from hoppin.store.memory import InMemoryRecordStore  # noqa: E402
from ledger_helpers import RecordingStore  # noqa: E402


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def redis_mock() -> AsyncMock:
    redis = AsyncMock()
    redis.publish = AsyncMock(return_value=1)
    return redis


@pytest.fixture
def streak_tracker(store: RecordingStore, redis_mock: AsyncMock) -> StreakTracker:
    return StreakTracker(store, redis=redis_mock)


@pytest.fixture
def recorder(store: RecordingStore, streak_tracker: StreakTracker, redis_mock: AsyncMock) -> VisitRecorder:
    return VisitRecorder(store, streak_tracker=streak_tracker, redis=redis_mock)


@pytest.fixture
def app() -> Generator[FastAPI, None, None]:
    """Fresh application over an empty in-memory store."""
    from hoppin.dependencies import auto_check_in_attempts
    from hoppin.main import create_app
    from hoppin.store.client import set_store

    set_store(InMemoryRecordStore())
    auto_check_in_attempts().clear()
    yield create_app()
    set_store(None)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
