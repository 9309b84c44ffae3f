"""
Liveness and readiness probes.
"""

from typing import Any

from fastapi import APIRouter, Request, Response, status

from orgsync.core.config import settings
from orgsync.core.database import check_database_connection

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check(request: Request) -> dict[str, Any]:
    """The process is up; also reports how many WebSocket connections are open."""
    registry = getattr(request.app.state, "registry", None)
    return {
        "status": "healthy",
        "version": settings.version,
        "environment": settings.environment,
        "connections": registry.count if registry is not None else 0,
    }


@router.get("/ready")
async def readiness_check(request: Request, response: Response) -> dict[str, Any]:
    """Ready once the database answers; 503 otherwise."""
    database_ok = await check_database_connection(
        getattr(request.app.state, "sessionmaker", None)
    )
    if not database_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "ready" if database_ok else "unavailable",
        "checks": {"database": "ok" if database_ok else "unreachable"},
    }
