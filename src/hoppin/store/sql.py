"""SQL-backed record store (PostgreSQL in production, SQLite in tests).

Optimistic concurrency uses the ``documents.version`` column: updates are
conditional on the version read inside the transaction and inserts rely on
the primary key, so a concurrent writer turns into a TransactionConflict and
the transaction function is re-run.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hoppin.db.models import Document
from hoppin.store.base import RecordStore, Transaction, TransactionFn, T
from hoppin.store.documents import DocumentRef, DocumentSnapshot, apply_write
from hoppin.store.errors import TransactionConflict, TransactionFailedError


async def _load(session: AsyncSession, path: str) -> DocumentSnapshot:
    result = await session.execute(
        select(Document.data, Document.version).where(Document.path == path)
    )
    row = result.one_or_none()
    if row is None:
        return DocumentSnapshot(path=path, data=None, version=0)
    return DocumentSnapshot(path=path, data=dict(row.data), version=row.version)


class _SqlTransaction(Transaction):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__()
        self._session = session

    async def _read(self, ref: DocumentRef) -> DocumentSnapshot:
        return await _load(self._session, ref.path)


class SqlRecordStore(RecordStore):
    """Document store on top of an async SQLAlchemy session factory."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_attempts: int = 5,
        retry_base_delay: float = 0.01,
    ) -> None:
        super().__init__(max_attempts=max_attempts, retry_base_delay=retry_base_delay)
        self._session_factory = session_factory

    async def get(self, ref: DocumentRef) -> DocumentSnapshot:
        try:
            async with self._session_factory() as session:
                return await _load(session, ref.path)
        except SQLAlchemyError as exc:
            msg = f"Failed to read {ref.path}"
            raise TransactionFailedError(msg) from exc

    async def _attempt(self, fn: TransactionFn[T]) -> T:
        async with self._session_factory() as session:
            tx = _SqlTransaction(session)
            try:
                result = await fn(tx)
                await self._commit(session, tx)
                await session.commit()
            except TransactionConflict:
                await session.rollback()
                raise
            except SQLAlchemyError as exc:
                await session.rollback()
                msg = "Record store transaction failed"
                raise TransactionFailedError(msg) from exc
            return result

    async def _commit(self, session: AsyncSession, tx: Transaction) -> None:
        commit_time = datetime.now(timezone.utc)
        written = {w.ref.path for w in tx.writes}

        # Documents read but not written must still be unchanged.
        for path, snapshot in tx.reads.items():
            if path in written:
                continue
            current = await session.scalar(select(Document.version).where(Document.path == path))
            if (current or 0) != snapshot.version:
                raise TransactionConflict(path)

        state: dict[str, DocumentSnapshot] = dict(tx.reads)
        for write in tx.writes:
            path = write.ref.path
            if path not in state:
                # Blind write: merge against whatever is stored right now.
                state[path] = await _load(session, path)
            base = state[path]
            data = apply_write(base.data, write, commit_time)
            await self._write_row(session, path, base.version, data, commit_time)
            state[path] = DocumentSnapshot(path=path, data=data, version=base.version + 1)

    async def _write_row(
        self,
        session: AsyncSession,
        path: str,
        expected_version: int,
        data: dict[str, Any],
        commit_time: datetime,
    ) -> None:
        if expected_version == 0:
            try:
                await session.execute(
                    insert(Document).values(
                        path=path, data=data, version=1, updated_at=commit_time,
                    )
                )
            except IntegrityError as exc:
                raise TransactionConflict(path) from exc
            return

        result = await session.execute(
            update(Document)
            .where(Document.path == path, Document.version == expected_version)
            .values(data=data, version=expected_version + 1, updated_at=commit_time)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise TransactionConflict(path)
