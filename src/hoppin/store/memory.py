"""In-process record store.

Used for local development and tests. Commits are serialised by an asyncio
lock; each read yields to the event loop so concurrent transactions
interleave the way remote round-trips would.
"""

from __future__ import annotations

import asyncio
import copy
from datetime import datetime, timezone
from typing import Any

from hoppin.store.base import RecordStore, Transaction, TransactionFn, T
from hoppin.store.documents import DocumentRef, DocumentSnapshot, Write, apply_write
from hoppin.store.errors import TransactionConflict


class _MemoryTransaction(Transaction):
    def __init__(self, store: InMemoryRecordStore) -> None:
        super().__init__()
        self._store = store

    async def _read(self, ref: DocumentRef) -> DocumentSnapshot:
        await asyncio.sleep(0)
        return self._store._snapshot(ref.path)


class InMemoryRecordStore(RecordStore):
    """Versioned dict of documents with optimistic transactions."""

    def __init__(self, max_attempts: int = 5, retry_base_delay: float = 0.0) -> None:
        super().__init__(max_attempts=max_attempts, retry_base_delay=retry_base_delay)
        self._documents: dict[str, tuple[int, dict[str, Any]]] = {}
        self._commit_lock = asyncio.Lock()

    async def get(self, ref: DocumentRef) -> DocumentSnapshot:
        return self._snapshot(ref.path)

    async def _attempt(self, fn: TransactionFn[T]) -> T:
        tx = _MemoryTransaction(self)
        result = await fn(tx)
        async with self._commit_lock:
            for path, snapshot in tx.reads.items():
                if self._version(path) != snapshot.version:
                    raise TransactionConflict(path)
            if tx.writes:
                self._apply(tx.writes)
        return result

    def _apply(self, writes: list[Write]) -> None:
        commit_time = datetime.now(timezone.utc)
        for write in writes:
            path = write.ref.path
            version, existing = self._documents.get(path, (0, None))
            self._documents[path] = (version + 1, apply_write(existing, write, commit_time))

    def _version(self, path: str) -> int:
        entry = self._documents.get(path)
        return entry[0] if entry else 0

    def _snapshot(self, path: str) -> DocumentSnapshot:
        entry = self._documents.get(path)
        if entry is None:
            return DocumentSnapshot(path=path, data=None, version=0)
        version, data = entry
        return DocumentSnapshot(path=path, data=copy.deepcopy(data), version=version)

    def __len__(self) -> int:
        return len(self._documents)
