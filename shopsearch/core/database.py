"""
Database configuration and session management

The engine and session factory are built once by the application lifespan and
stored on ``app.state``; nothing here connects at import time.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from shopsearch.core.config import Settings
from shopsearch.database.models import Base


def to_async_url(database_url: str) -> str:
    """Convert postgresql:// to postgresql+asyncpg:// for async support"""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return database_url


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Create the async engine; pool options only apply to server databases."""
    url = to_async_url(settings.database_url)
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=False)

    return create_async_engine(
        url,
        echo=settings.debug,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_pre_ping=True,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Create async session factory"""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(engine: AsyncEngine):
    """Create all database tables"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def get_db_session(session_factory: async_sessionmaker) -> AsyncIterator[AsyncSession]:
    """Get async database session"""
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

