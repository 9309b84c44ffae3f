"""
Per-connection receive loop.

Each accepted WebSocket runs this loop in its own task. Messages of one
connection are handled one after the other, in arrival order; different
connections run concurrently.

Close codes:
    1000  logout
    1001  server shutdown
    1008  handshake Origin not allowed
    4000  idle timeout (no inbound message in ws_idle_timeout_seconds)
    4001  authentication timeout (not authenticated within
          ws_auth_timeout_seconds of connecting)
    4401  unauthorized (bad, expired or missing credential)
"""

import asyncio
import logging
import uuid

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from orgsync.core.config import settings
from orgsync.core.logging import correlation_id_var
from orgsync.ws.dispatcher import MessageDispatcher
from orgsync.ws.registry import ConnectionRegistry

logger = logging.getLogger(__name__)

CLOSE_GOING_AWAY = 1001
CLOSE_POLICY_VIOLATION = 1008
CLOSE_IDLE_TIMEOUT = 4000
CLOSE_AUTH_TIMEOUT = 4001


async def _receive_frame(websocket: WebSocket) -> str | bytes:
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(code=message.get("code", 1000))
    if message.get("text") is not None:
        return message["text"]
    return message.get("bytes") or b""


async def _close(websocket: WebSocket, code: int, reason: str = "") -> None:
    if websocket.client_state == WebSocketState.CONNECTED:
        await websocket.close(code=code, reason=reason)


async def serve_connection(
    websocket: WebSocket,
    dispatcher: MessageDispatcher,
    registry: ConnectionRegistry,
) -> None:
    """
    Accept a WebSocket and process its messages until it closes.

    Args:
        websocket: Incoming connection (not yet accepted)
        dispatcher: Message dispatcher
        registry: Connection registry
    """
    origin = websocket.headers.get("origin")
    if not settings.is_origin_allowed(origin):
        logger.warning(f"Rejected WebSocket handshake from origin {origin}")
        await websocket.close(code=CLOSE_POLICY_VIOLATION)
        return

    await websocket.accept()

    connection_id = uuid.uuid4().hex[:12]
    token = correlation_id_var.set(connection_id)
    client = f"{websocket.client.host}:{websocket.client.port}" if websocket.client else "unknown"

    try:
        await registry.register(connection_id, websocket)
    except RuntimeError:
        await _close(websocket, CLOSE_GOING_AWAY, "Server shutting down")
        correlation_id_var.reset(token)
        return

    logger.info(f"WebSocket connection {connection_id} opened from {client}")

    loop = asyncio.get_running_loop()
    auth_deadline = loop.time() + settings.ws_auth_timeout_seconds
    authenticated = False

    try:
        while True:
            timeout = settings.ws_idle_timeout_seconds
            auth_bound = False
            if not authenticated:
                remaining = max(auth_deadline - loop.time(), 0)
                if remaining <= timeout:
                    timeout, auth_bound = remaining, True

            try:
                raw = await asyncio.wait_for(_receive_frame(websocket), timeout)
            except asyncio.TimeoutError:
                if auth_bound:
                    logger.info(f"Closing connection {connection_id}: authentication timeout")
                    await _close(websocket, CLOSE_AUTH_TIMEOUT, "Authentication timeout")
                else:
                    logger.info(f"Closing connection {connection_id}: idle timeout")
                    await _close(websocket, CLOSE_IDLE_TIMEOUT, "Idle timeout")
                break

            result = await dispatcher.dispatch(raw, connection_id)

            if result.user_id and not authenticated:
                authenticated = True
                await registry.subscribe(connection_id, user_id=result.user_id)

            await websocket.send_json(result.response)

            if result.event is not None:
                await registry.broadcast("accounts", result.event, exclude=connection_id)

            if result.close_code is not None:
                await _close(websocket, result.close_code)
                break

    except WebSocketDisconnect as e:
        logger.info(f"WebSocket connection {connection_id} closed by client (code {e.code})")
    except Exception:
        logger.exception(f"WebSocket connection {connection_id} failed")
        await _close(websocket, 1011)
    finally:
        await registry.unregister(connection_id)
        logger.info(f"WebSocket connection {connection_id} cleaned up")
        correlation_id_var.reset(token)
