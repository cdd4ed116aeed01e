"""Transactional document store used by the gamification ledger."""

from hoppin.store.base import RecordStore, Transaction
from hoppin.store.documents import SERVER_TIMESTAMP, DocumentRef, DocumentSnapshot
from hoppin.store.errors import (
    ReadAfterWriteError,
    StoreError,
    TransactionConflict,
    TransactionFailedError,
)
from hoppin.store.memory import InMemoryRecordStore

__all__ = [
    "SERVER_TIMESTAMP",
    "DocumentRef",
    "DocumentSnapshot",
    "InMemoryRecordStore",
    "ReadAfterWriteError",
    "RecordStore",
    "StoreError",
    "Transaction",
    "TransactionConflict",
    "TransactionFailedError",
]
