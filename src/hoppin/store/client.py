"""Process-wide record store handle with an explicit init/close contract."""

from __future__ import annotations

import logging

from hoppin.config import Settings
from hoppin.database import close_db, create_schema, get_session_factory, init_db
from hoppin.store.base import RecordStore
from hoppin.store.memory import InMemoryRecordStore
from hoppin.store.sql import SqlRecordStore

logger = logging.getLogger(__name__)

_store: RecordStore | None = None


async def build_store(settings: Settings) -> RecordStore:
    """Construct the record store selected by ``settings.store_backend``."""
    backend = settings.store_backend.lower()
    if backend == "memory":
        return InMemoryRecordStore(max_attempts=settings.transaction_max_attempts)
    if backend == "sql":
        await init_db(settings.database_url)
        await create_schema()
        return SqlRecordStore(
            get_session_factory(),
            max_attempts=settings.transaction_max_attempts,
        )
    msg = f"Unknown store backend: {settings.store_backend!r}"
    raise ValueError(msg)


async def init_store(settings: Settings) -> RecordStore:
    """Initialize the process-wide record store."""
    global _store  # noqa: PLW0603
    _store = await build_store(settings)
    logger.info("Record store initialized (backend=%s)", settings.store_backend)
    return _store


def set_store(store: RecordStore | None) -> None:
    """Install an already constructed store (tests, embedding applications)."""
    global _store  # noqa: PLW0603
    _store = store


async def close_store() -> None:
    """Close the record store and any database engine behind it."""
    global _store  # noqa: PLW0603
    if _store is not None:
        await _store.close()
        _store = None
    await close_db()


def get_store() -> RecordStore:
    """Get the record store (FastAPI dependency)."""
    if _store is None:
        msg = "Record store not initialized. Call init_store() first."
        raise RuntimeError(msg)
    return _store
