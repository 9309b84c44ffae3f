"""
WebSocket endpoint.
"""

from fastapi import APIRouter, WebSocket

from orgsync.ws.connection import serve_connection

router = APIRouter(tags=["WebSocket"])


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """Message channel: one JSON envelope per text frame."""
    state = websocket.app.state
    await serve_connection(websocket, state.dispatcher, state.registry)
