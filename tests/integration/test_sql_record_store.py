"""SQL record store against SQLite (aiosqlite)."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy import text

from hoppin.database import close_db, create_schema, get_engine, get_session_factory, init_db
from hoppin.gamification.reward_service import VisitRecorder
from hoppin.gamification.schemas import VisitOutcome
from hoppin.gamification.streak_service import StreakTracker
from hoppin.store.documents import SERVER_TIMESTAMP, DocumentRef
from hoppin.store.errors import ReadAfterWriteError, TransactionFailedError
from hoppin.store.paths import category_progress_doc, streak_state_doc
from hoppin.store.sql import SqlRecordStore
from ledger_helpers import DAY, day

REF = DocumentRef.from_segments("users", "u1", "gamification", "state")


@pytest_asyncio.fixture
async def sql_store(tmp_path) -> AsyncGenerator[SqlRecordStore, None]:
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    await create_schema()
    yield SqlRecordStore(get_session_factory(), max_attempts=5, retry_base_delay=0)
    await close_db()


async def _put(store: SqlRecordStore, data: dict, merge: bool = False) -> None:
    async def write(tx):
        tx.set(REF, data, merge=merge)

    await store.run_transaction(write)


class TestSqlReadsAndWrites:
    @pytest.mark.asyncio
    async def test_missing_document(self, sql_store):
        snap = await sql_store.get(REF)
        assert not snap.exists
        assert snap.version == 0

    @pytest.mark.asyncio
    async def test_insert_then_update(self, sql_store):
        await _put(sql_store, {"a": 1, "b": 2})
        assert (await sql_store.get(REF)).version == 1

        await _put(sql_store, {"b": 3}, merge=True)
        snap = await sql_store.get(REF)
        assert snap.data == {"a": 1, "b": 3}
        assert snap.version == 2

    @pytest.mark.asyncio
    async def test_plain_set_replaces(self, sql_store):
        await _put(sql_store, {"a": 1})
        await _put(sql_store, {"z": 0})
        assert (await sql_store.get(REF)).data == {"z": 0}

    @pytest.mark.asyncio
    async def test_server_timestamp(self, sql_store):
        await _put(sql_store, {"timestamp": SERVER_TIMESTAMP})
        assert isinstance((await sql_store.get(REF)).get("timestamp"), str)

    @pytest.mark.asyncio
    async def test_read_after_write_rejected(self, sql_store):
        async def bad(tx):
            tx.set(REF, {"a": 1})
            await tx.get(REF)

        with pytest.raises(ReadAfterWriteError):
            await sql_store.run_transaction(bad)
        assert not (await sql_store.get(REF)).exists


class TestSqlConflicts:
    """Version checks turn concurrent writers into retries."""

    @pytest.mark.asyncio
    async def test_update_conflict_retries(self, sql_store):
        await _put(sql_store, {"count": 0})
        attempts = 0

        async def increment(tx):
            nonlocal attempts
            attempts += 1
            snap = await tx.get(REF)
            if attempts == 1:
                await _put(sql_store, {"count": 10})
            tx.set(REF, {"count": snap.get("count") + 1})

        await sql_store.run_transaction(increment)
        assert attempts == 2
        assert (await sql_store.get(REF)).get("count") == 11

    @pytest.mark.asyncio
    async def test_insert_conflict_retries(self, sql_store):
        attempts = 0

        async def create(tx):
            nonlocal attempts
            attempts += 1
            snap = await tx.get(REF)
            if attempts == 1:
                await _put(sql_store, {"owner": "other"})
            if not snap.exists:
                tx.set(REF, {"owner": "me"})

        await sql_store.run_transaction(create)
        assert attempts == 2
        assert (await sql_store.get(REF)).data == {"owner": "other"}

    @pytest.mark.asyncio
    async def test_backend_error_becomes_transaction_failed(self, sql_store):
        async with get_engine().begin() as conn:
            await conn.execute(text("DROP TABLE documents"))

        async def read(tx):
            await tx.get(REF)

        with pytest.raises(TransactionFailedError):
            await sql_store.run_transaction(read)


class TestLedgerOnSql:
    """The visit recorder and streak tracker running on the SQL store."""

    @pytest.mark.asyncio
    async def test_visits_and_streak(self, sql_store):
        recorder = VisitRecorder(sql_store, streak_tracker=StreakTracker(sql_store))

        assert await recorder.record_visit("u1", "p1", 2, now=DAY) is VisitOutcome.NEW_VISIT
        assert await recorder.record_visit("u1", "p1", 2, now=DAY) is VisitOutcome.DUPLICATE
        assert await recorder.record_visit("u1", "p1", 2, now=day(1)) is VisitOutcome.NEW_VISIT

        progress = await sql_store.get(category_progress_doc("u1"))
        assert progress.data == {"cat2_visits": 2}

        streak = await sql_store.get(streak_state_doc("u1"))
        assert streak.get("currentStreak") == 2
        assert streak.get("bestStreak") == 2
        assert streak.get("lastCheckInDate") == "2026-03-03"

    @pytest.mark.asyncio
    async def test_tier_reached(self, sql_store):
        recorder = VisitRecorder(sql_store)
        for offset in range(5):
            await recorder.record_visit("u1", "p1", 7, now=day(offset))
        progress = await sql_store.get(category_progress_doc("u1"))
        assert progress.data == {"cat7_visits": 5, "cat7_badgeTier": 1}
