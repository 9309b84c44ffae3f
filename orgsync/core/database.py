"""
Database engine and session factory.

The application owns one AsyncEngine, created by the lifespan and disposed
on shutdown. Every inbound WebSocket message runs in its own AsyncSession
taken from the factory built here.

DATABASE_URL must point at PostgreSQL (asyncpg). An explicit SQLite URL
(aiosqlite) is accepted too, for tests; pool sizing does not apply to it.
"""

import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from orgsync.core.config import settings

logger = logging.getLogger(__name__)


def _pool_options(backend: str) -> dict[str, Any]:
    if backend == "sqlite":
        return {}
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": settings.db_pool_pre_ping,
        "pool_recycle": settings.db_pool_recycle,
        "pool_timeout": settings.db_pool_timeout,
        "connect_args": {
            "server_settings": {"application_name": f"{settings.app_name} ({settings.environment})"},
        },
    }


def create_database_engine(database_url: str | None = None) -> AsyncEngine:
    """
    Create the async engine.

    Args:
        database_url: Overrides settings.database_url

    Returns:
        AsyncEngine; pooled (DB_POOL_* settings) for PostgreSQL
    """
    url = make_url(database_url or settings.database_url_str)
    engine = create_async_engine(url, echo=settings.debug, **_pool_options(url.get_backend_name()))

    logger.info(
        f"Database engine created for {url.get_backend_name()} "
        f"at {url.host or url.database or 'memory'}"
    )
    return engine


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Session factory for per-message sessions.

    Instances stay loaded after commit so replies can be built from them.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def check_database_connection(
    sessionmaker: async_sessionmaker[AsyncSession] | None,
) -> bool:
    """Run ``SELECT 1``; False when the store is unreachable or not set up yet."""
    if sessionmaker is None:
        return False

    try:
        async with sessionmaker() as session:
            await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database health check failed: {e}")
        return False
    return True


async def close_database_connection(engine: AsyncEngine) -> None:
    """Dispose the engine's pool on shutdown."""
    await engine.dispose()
    logger.info("Database engine disposed")
