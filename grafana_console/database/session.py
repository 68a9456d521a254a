"""
Database Session Management Module.

Provides async database session management using SQLAlchemy 2.0+ async patterns.
The mirror repository opens one short session per operation.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from grafana_console.database.engine import get_engine, close_engine


# Global session factory (initialized lazily)
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the async session factory."""
    global _async_session_factory

    if _async_session_factory is None:
        engine = get_engine()
        _async_session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    return _async_session_factory


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """
    Open a session from ``session_factory`` as a single transaction.

    Commits on normal exit and rolls back when the body raises.
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_database() -> None:
    """
    Initialize database schema.

    Creates all tables defined in models if they don't exist.
    Should be called during application startup.
    """
    from grafana_console.database.base import Base
    import grafana_console.models  # noqa: F401 - Import to register models with Base.metadata

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db_connections() -> None:
    """
    Close all database connections.

    Should be called during application shutdown.
    """
    global _async_session_factory

    await close_engine()
    _async_session_factory = None
