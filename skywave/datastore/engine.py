"""
Database engine setup.
SQLAlchemy async engine over SQLite (aiosqlite) by default.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from skywave.datastore.models import Base
from skywave.settings import global_settings

# Global engine instance
engine = None
AsyncSessionLocal = None


async def init_db(database_url: str | None = None) -> None:
    """Create the engine and session factory, then create missing tables."""
    global engine, AsyncSessionLocal

    engine = create_async_engine(
        database_url or global_settings.database_url,
        echo=global_settings.database_echo,
        future=True,
    )

    AsyncSessionLocal = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session that commits on success and rolls back on error."""
    if AsyncSessionLocal is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def close_db() -> None:
    """Dispose of the engine."""
    global engine, AsyncSessionLocal
    if engine:
        await engine.dispose()
    engine = None
    AsyncSessionLocal = None


def get_session_factory():
    """Session factory for callers outside a request scope (the scheduler)."""
    if AsyncSessionLocal is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return AsyncSessionLocal
