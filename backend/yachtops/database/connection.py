"""Async database engine and session management using SQLAlchemy 2.0.

The engine is created on application startup rather than at import time so
that the marine pipeline can be exercised against any async driver.
"""

import logging
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

logger = logging.getLogger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def get_async_database_url(url: str) -> str:
    """Convert standard database URL to async version."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://") and not url.startswith("sqlite+"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


def create_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine, pooling only for server databases."""
    async_url = get_async_database_url(url)
    if async_url.startswith("postgresql"):
        return create_async_engine(
            async_url,
            pool_pre_ping=True,
            pool_size=10,
            max_overflow=20,
            pool_recycle=300,  # Recycle connections after 5 minutes
            echo=echo,
        )
    return create_async_engine(async_url, echo=echo)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build the session factory used by repositories."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


def init_db_engine(url: str, echo: bool = False) -> async_sessionmaker[AsyncSession]:
    """Initialize the process-wide engine (call on startup)."""
    global _engine, _session_factory

    logger.info("Initializing database engine...")
    _engine = create_engine(url, echo=echo)
    _session_factory = create_session_factory(_engine)
    return _session_factory


async def check_database_connection() -> bool:
    """Check if database connection is healthy."""
    if _session_factory is None:
        return False
    try:
        async with _session_factory() as session:
            await session.execute(text("SELECT 1"))
            return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False


async def close_db_engine() -> None:
    """Close database engine (call on shutdown)."""
    global _engine, _session_factory

    if _engine is None:
        return
    logger.info("Closing database engine...")
    await _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("Database engine closed")
