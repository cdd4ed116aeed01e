"""Transactional record store interface.

A transaction function receives a :class:`Transaction`, performs all of its
reads with ``await tx.get(ref)`` and then buffers writes with
``tx.set(ref, data, merge=...)``. The store validates the versions it read
at commit time and re-runs the whole function on conflict.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from hoppin.store.documents import DocumentRef, DocumentSnapshot, Write
from hoppin.store.errors import ReadAfterWriteError, TransactionConflict, TransactionFailedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TransactionFn = Callable[["Transaction"], Awaitable[T]]


class Transaction(ABC):
    """Read-then-write unit of work. Reads after the first write are rejected."""

    def __init__(self) -> None:
        self._reads: dict[str, DocumentSnapshot] = {}
        self._writes: list[Write] = []

    async def get(self, ref: DocumentRef) -> DocumentSnapshot:
        if self._writes:
            msg = f"Read of {ref.path} after a write was buffered; all reads must come first"
            raise ReadAfterWriteError(msg)
        snapshot = await self._read(ref)
        self._reads[ref.path] = snapshot
        return snapshot

    def set(self, ref: DocumentRef, data: dict[str, Any], *, merge: bool = False) -> None:
        self._writes.append(Write(ref=ref, data=dict(data), merge=merge))

    @property
    def reads(self) -> dict[str, DocumentSnapshot]:
        return self._reads

    @property
    def writes(self) -> list[Write]:
        return self._writes

    @abstractmethod
    async def _read(self, ref: DocumentRef) -> DocumentSnapshot:
        """Fetch the current snapshot of ``ref`` from the backend."""


class RecordStore(ABC):
    """Optimistic transactional document store."""

    def __init__(self, max_attempts: int = 5, retry_base_delay: float = 0.01) -> None:
        if max_attempts < 1:
            msg = "max_attempts must be at least 1"
            raise ValueError(msg)
        self._max_attempts = max_attempts
        self._retry_base_delay = retry_base_delay

    async def run_transaction(self, fn: TransactionFn[T]) -> T:
        """Run ``fn`` atomically, retrying on conflict.

        Raises TransactionFailedError once the retry budget is spent.
        """
        for attempt in range(1, self._max_attempts + 1):
            try:
                return await self._attempt(fn)
            except TransactionConflict as exc:
                logger.debug(
                    "Transaction conflict on %s (attempt %d/%d)",
                    exc.path, attempt, self._max_attempts,
                )
                if attempt < self._max_attempts and self._retry_base_delay > 0:
                    await asyncio.sleep(min(self._retry_base_delay * 2 ** (attempt - 1), 1.0))

        msg = f"Transaction aborted after {self._max_attempts} conflicting attempts"
        raise TransactionFailedError(msg)

    @abstractmethod
    async def _attempt(self, fn: TransactionFn[T]) -> T:
        """Run ``fn`` once and commit, raising TransactionConflict on a stale read."""

    @abstractmethod
    async def get(self, ref: DocumentRef) -> DocumentSnapshot:
        """Non-transactional read of a single document."""

    async def close(self) -> None:
        """Release backend resources."""
