"""
Database connection management with SQLAlchemy async engine.

This module provides async engine and session management using SQLAlchemy
2.0, the FastAPI session dependency, and startup/shutdown helpers. PostgreSQL
runs through asyncpg with a queue pool; SQLite (local runs and tests) runs
through aiosqlite.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from marketplace.core.config import get_settings
from marketplace.core.logging import get_logger

logger = get_logger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _convert_database_url_to_async(url: str) -> str:
    """Switch a plain PostgreSQL URL to the asyncpg driver."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def _engine_options(url: str) -> dict[str, Any]:
    """Engine keyword arguments for the URL's backend."""
    settings = get_settings()
    backend = make_url(url).get_backend_name()

    if backend == "sqlite":
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if make_url(url).database in (None, "", ":memory:"):
            # One shared connection, otherwise every checkout sees an empty db.
            options["poolclass"] = StaticPool
        return options

    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "connect_args": {
            "server_settings": {"application_name": settings.app_name},
            "command_timeout": 60,
        },
    }


def create_engine(url: Optional[str] = None) -> AsyncEngine:
    """
    Create async SQLAlchemy engine.

    Args:
        url: Optional database URL, defaults to the configured one

    Returns:
        Configured async SQLAlchemy engine
    """
    settings = get_settings()
    database_url = _convert_database_url_to_async(url or settings.database_url)

    engine = create_async_engine(
        database_url,
        echo=settings.debug,
        **_engine_options(database_url),
    )

    logger.info(
        "Database engine created",
        backend=make_url(database_url).get_backend_name(),
        environment=settings.environment,
    )
    return engine


def get_engine() -> AsyncEngine:
    """Get or create the global async database engine."""
    global _engine

    if _engine is None:
        _engine = create_engine()
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the global session factory."""
    global _session_factory

    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Database session factory created")

    return _session_factory


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create async database session with automatic cleanup.

    Commits when the block exits normally and rolls back on any exception.
    """
    session = get_session_factory()()

    try:
        yield session
        await session.commit()
    except Exception as e:
        await session.rollback()
        logger.warning(
            "Database session rolled back",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise
    finally:
        await session.close()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database session injection.

    Example:
        @router.get("/orders")
        async def list_orders(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with get_db_session() as session:
        yield session


async def check_database_health() -> bool:
    """Run ``SELECT 1`` against the configured database."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.warning(
            "Database health check failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        return False


async def create_tables() -> None:
    """Create missing tables from model metadata."""
    from marketplace.database import models  # noqa: F401  registers tables
    from marketplace.database.base import Base

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured", tables=sorted(Base.metadata.tables))


async def close_database_connections() -> None:
    """Dispose of the engine during application shutdown."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        logger.info("Database connections closed and engine disposed")
    _engine = None
    _session_factory = None
