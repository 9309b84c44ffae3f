"""
Service information.
"""

from typing import Any

from fastapi import APIRouter

from orgsync.core.config import settings
from orgsync.schemas.messages import ACTION_PAYLOADS, PUBLIC_ACTIONS

router = APIRouter(tags=["Root"])


@router.get("/")
async def root() -> dict[str, Any]:
    """Name, version and how to talk to the service."""
    return {
        "name": settings.app_name,
        "version": settings.version,
        "websocket": "/ws",
        "actions": sorted(ACTION_PAYLOADS),
        "publicActions": sorted(PUBLIC_ACTIONS),
    }
