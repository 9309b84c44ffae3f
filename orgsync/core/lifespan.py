import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from orgsync.core.config import settings
from orgsync.core.database import (
    close_database_connection,
    create_database_engine,
    create_sessionmaker,
)
from orgsync.services.bootstrap_service import BootstrapService
from orgsync.services.reconciliation_service import run_periodic_sync
from orgsync.ws.dispatcher import MessageDispatcher
from orgsync.ws.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


# ============================================================================
# Lifespan Context Manager
# ============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore
    """
    Lifespan context manager for startup and shutdown events.

    Handles:
    - Database engine and session factory creation (stored in app.state)
    - Bootstrap of the main account and first admin
    - Connection registry and message dispatcher
    - Optional periodic reconciliation task
    - Closing every connection and the engine on shutdown
    """
    logger.info(f"Starting {settings.app_name} v{settings.version}")
    logger.info(f"Environment: {settings.environment}")

    engine = create_database_engine()
    app.state.sessionmaker = create_sessionmaker(engine)
    logger.info("Sessionmaker created successfully")

    if settings.bootstrap_enabled:
        async with app.state.sessionmaker() as session:
            await BootstrapService(session).run()

    app.state.registry = ConnectionRegistry()
    app.state.dispatcher = MessageDispatcher(app.state.sessionmaker)

    sync_task = None
    if settings.legacy_sync_interval_seconds > 0:
        if settings.bootstrap_admin_email:
            sync_task = asyncio.create_task(
                run_periodic_sync(
                    app.state.sessionmaker,
                    settings.legacy_sync_interval_seconds,
                    settings.bootstrap_admin_email,
                )
            )
        else:
            logger.warning("Periodic synchronization needs BOOTSTRAP_ADMIN_EMAIL, not started")

    yield

    logger.info("Shutting down application")
    if sync_task is not None:
        sync_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sync_task

    await app.state.registry.close_all()
    await close_database_connection(engine)
    app.state.sessionmaker = None
