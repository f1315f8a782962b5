"""
Async Database Session Management

Owns the SQLAlchemy async engine shared by all requests and hands out one
session per request or per command.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from appointment_service.config import settings

logger = logging.getLogger(__name__)


# The engine is the only process-wide state; repositories receive sessions.
_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def _engine_options() -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.db_echo, "pool_pre_ping": True}
    if settings.database_url_str.startswith("postgresql"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
        )
    return options


def get_engine() -> AsyncEngine:
    """
    Get or create the async database engine.

    Pool sizing from the settings applies to PostgreSQL only; SQLite
    URLs keep the driver's default pool.

    Returns:
        AsyncEngine: SQLAlchemy async engine instance
    """
    global _engine

    if _engine is None:
        _engine = create_async_engine(settings.database_url_str, **_engine_options())
        logger.info("Database engine created")

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Get or create the async session factory.

    Returns:
        async_sessionmaker: Session factory for creating new sessions
    """
    global _async_session_factory

    if _async_session_factory is None:
        _async_session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            autoflush=False,
            expire_on_commit=False,
        )
        logger.info("Session factory created")

    return _async_session_factory


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions.

    Yields:
        AsyncSession: Database session for the request
    """
    session = get_session_factory()()

    try:
        yield session
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"Database error occurred: {e}")
        raise
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for database sessions outside of FastAPI.

    Used by the startup hook and the seed command.

    Example:
        async with get_db_context() as db:
            repo = AppointmentRepository(db)
            await repo.count_appointments()
    """
    session = get_session_factory()()

    try:
        yield session
        await session.commit()
    except Exception as e:
        await session.rollback()
        logger.error(f"Error in database context: {e}")
        raise
    finally:
        await session.close()


async def check_database_connection() -> bool:
    """
    Check if database connection is healthy.

    Returns:
        bool: True if connection is healthy, False otherwise
    """
    try:
        async with get_db_context() as db:
            result = await db.execute(text("SELECT 1"))
            result.scalar()
            logger.debug("Database connection check successful")
            return True
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database connection check failed: {e}")
        return False


async def close_database_connection() -> None:
    """
    Close database engine and cleanup resources.

    Should be called during application shutdown.
    """
    global _engine, _async_session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        logger.info("Database connections closed")
