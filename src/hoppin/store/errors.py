"""Record store exceptions."""

from __future__ import annotations


class StoreError(Exception):
    """Base class for record store failures."""


class TransactionFailedError(StoreError):
    """A transaction could not be committed.

    Raised when the optimistic retry budget is exhausted or the backend
    fails (connectivity, driver errors). No writes from the failed
    transaction are visible.
    """


class ReadAfterWriteError(StoreError):
    """A transaction read a document after buffering a write.

    This is a programming error in the transaction function; it is never
    retried.
    """


class TransactionConflict(StoreError):
    """A document read by the transaction changed before commit.

    Internal to the store: it triggers a retry and never escapes
    ``RecordStore.run_transaction``.
    """

    def __init__(self, path: str) -> None:
        super().__init__(f"Conflicting write on {path}")
        self.path = path
