"""Async SQLAlchemy engine and session management."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from hoppin.db.base import Base

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


async def init_db(url: str) -> None:
    """Initialize the database engine and session factory."""
    global _engine, _session_factory  # noqa: PLW0603
    engine_kwargs: dict[str, object] = {"pool_pre_ping": True, "echo": False}
    if url.startswith("postgresql+asyncpg"):
        engine_kwargs.update(
            pool_size=20,
            max_overflow=10,
            connect_args={"statement_cache_size": 0},
        )
    _engine = create_async_engine(url, **engine_kwargs)
    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_schema() -> None:
    """Create the documents table if it does not exist yet."""
    from hoppin.db import models  # noqa: F401  (registers tables on Base.metadata)

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the database engine."""
    global _engine, _session_factory  # noqa: PLW0603
    if _engine:
        await _engine.dispose()
        _engine = None
        _session_factory = None


def get_engine() -> AsyncEngine:
    """Get the async engine instance."""
    if _engine is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory used by the SQL record store."""
    if _session_factory is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    return _session_factory

