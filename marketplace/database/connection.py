"""
Database Connection Management

Async engine lifecycle for the marketplace entity store with SQLAlchemy 2.0.
The activity service only reads, so sessions are never committed.
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool
from sqlalchemy import text

from marketplace.config import Settings, get_settings

logger = structlog.get_logger(__name__)

# Global engine and session factory
_engine: Optional[AsyncEngine] = None
_async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build the session factory used by the entity store."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_database(settings: Optional[Settings] = None) -> AsyncEngine:
    """
    Initialize the database engine and session factory.

    Args:
        settings: Settings providing the database URL (defaults to cached settings)

    Returns:
        AsyncEngine: The initialized database engine
    """
    global _engine, _async_session_factory

    if _engine is not None:
        logger.warning("Database already initialized")
        return _engine

    settings = settings or get_settings()

    # asyncpg pools its own connections
    _engine = create_async_engine(
        settings.database.async_url,
        echo=settings.database.echo,
        pool_pre_ping=True,
        poolclass=NullPool,
    )
    _async_session_factory = create_session_factory(_engine)

    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info(
            "Database connection established",
            host=settings.database.host,
            database=settings.database.db,
        )
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        raise

    return _engine


async def close_database() -> None:
    """Dispose of the engine and forget the session factory."""
    global _engine, _async_session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        logger.info("Database connection pool closed")


def get_engine() -> AsyncEngine:
    """
    Get the database engine.

    Raises:
        RuntimeError: If database is not initialized
    """
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Get the session factory handed to the entity store.

    Raises:
        RuntimeError: If database is not initialized
    """
    if _async_session_factory is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _async_session_factory


@asynccontextmanager
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Get a read-only database session.

    Example:
        async with get_db() as db:
            result = await db.execute(query)
    """
    session = get_session_factory()()
    try:
        yield session
    finally:
        await session.close()


async def check_database_health() -> dict:
    """
    Check database health status.

    Returns:
        dict: Health status with latency information
    """
    try:
        start = time.perf_counter()
        async with get_db() as db:
            await db.execute(text("SELECT 1"))
        latency_ms = (time.perf_counter() - start) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
        }
    except Exception as e:
        logger.warning("Database health check failed", error=str(e))
        return {
            "status": "unhealthy",
            "error": type(e).__name__,
        }
