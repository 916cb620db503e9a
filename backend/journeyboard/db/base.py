"""Shared SQLAlchemy base, engine lifecycle and connectivity check.

The schema is owned by the Alembic migrations under ``alembic/versions``;
``init_db`` only creates tables itself in debug mode or when asked to
(local development and the integration tests).
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from journeyboard.core.config import get_settings


class Base(DeclarativeBase):
    pass


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


async def init_db(url: str | None = None, create_tables: bool | None = None) -> None:
    """Create the engine and session factory. Safe to call more than once.

    Args:
        url: Database URL; defaults to settings.database_url
        create_tables: Run create_all for the pipeline tables; defaults to settings.debug
    """
    global _engine, _session_factory

    if _engine is not None:
        return

    settings = get_settings()
    _engine = create_async_engine(
        url or settings.database_url,
        echo=settings.debug,
        pool_pre_ping=True,
        pool_size=settings.database_pool_size,
    )
    _session_factory = async_sessionmaker(_engine, class_=AsyncSession, expire_on_commit=False)

    if create_tables if create_tables is not None else settings.debug:
        # Models register themselves on Base.metadata when imported
        import journeyboard.db.models  # noqa: F401

        async with _engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the engine and release all connections."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the configured session factory.

    Raises RuntimeError if init_db() has not been called.
    """
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _session_factory


async def ping_db() -> None:
    """Round-trip ``SELECT 1``. Raises RuntimeError before init_db, SQLAlchemyError/OSError on failure."""
    async with get_session_factory()() as session:
        await session.execute(text("SELECT 1"))
