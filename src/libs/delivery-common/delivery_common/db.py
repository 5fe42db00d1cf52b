# src/libs/delivery-common/delivery_common/db.py
import logging
import os
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import DB_POOL_PRE_PING, POSTGRES_DB, POSTGRES_HOST, POSTGRES_PASSWORD, POSTGRES_PORT, POSTGRES_USER

logger = logging.getLogger(__name__)

async_engine: Optional[AsyncEngine] = None
AsyncSessionLocal: Optional[async_sessionmaker] = None


def get_sync_database_url():
    """
    Determines the synchronous database URL used by Alembic.
    Prioritizes DATABASE_URL for containerized environments.
    Falls back to HOST_DATABASE_URL for local development/testing.
    """
    url = os.getenv("DATABASE_URL") or os.getenv("HOST_DATABASE_URL")
    if url:
        return url.replace("postgresql+asyncpg://", "postgresql://")

    return f"postgresql://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_HOST}:{POSTGRES_PORT}/{POSTGRES_DB}"


def get_async_database_url():
    """
    Determines the correct async database URL, with an asyncpg driver scheme.
    """
    url = os.getenv("DATABASE_URL") or f"postgresql+asyncpg://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_HOST}:{POSTGRES_PORT}/{POSTGRES_DB}"
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://")
    return url


def init_db(url: Optional[str] = None) -> AsyncEngine:
    """
    Creates the process-wide async engine and session factory.

    Called once at process start (the FastAPI lifespan); sessions requested
    before this raise instead of silently creating an engine.
    """
    global async_engine, AsyncSessionLocal
    if async_engine is not None:
        return async_engine

    async_engine = create_async_engine(url or get_async_database_url(), pool_pre_ping=DB_POOL_PRE_PING)
    AsyncSessionLocal = async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )
    logger.info("Database engine initialized.", extra={"dialect": async_engine.dialect.name})
    return async_engine


async def dispose_db() -> None:
    global async_engine, AsyncSessionLocal
    if async_engine is None:
        return
    await async_engine.dispose()
    async_engine = None
    AsyncSessionLocal = None
    logger.info("Database engine disposed.")


async def get_async_db_session() -> AsyncIterator[AsyncSession]:
    """
    An async dependency that provides an SQLAlchemy AsyncSession.
    """
    if AsyncSessionLocal is None:
        raise RuntimeError("Database is not initialized; call init_db() at startup.")
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
