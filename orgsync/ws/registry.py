"""
Registry of live WebSocket connections.

The registry is created in the application lifespan, stored in app.state and
closed on shutdown. Entries are added when a connection is accepted and
removed when its receive loop ends, whatever the reason.

Topics:
    Authenticated connections subscribe to topics ("auth", "accounts",
    "users"). Account mutations are broadcast to the "accounts" topic.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)

DEFAULT_TOPICS = ("auth", "accounts", "users")


@dataclass
class ConnectionEntry:
    """A registered connection and its subscriptions."""

    connection_id: str
    websocket: WebSocket
    user_id: str | None = None
    topics: set[str] = field(default_factory=set)


class ConnectionRegistry:
    """
    Concurrency-safe map of connection id to connection entry.

    All mutations hold an asyncio.Lock. Sends happen outside the lock so a
    slow client never blocks registration of other connections.
    """

    def __init__(self) -> None:
        self._connections: dict[str, ConnectionEntry] = {}
        self._lock = asyncio.Lock()
        self._closed = False

    async def register(self, connection_id: str, websocket: WebSocket) -> ConnectionEntry:
        """
        Add a connection.

        Raises:
            RuntimeError: If the registry has been closed (shutdown in progress)
        """
        async with self._lock:
            if self._closed:
                raise RuntimeError("Connection registry is closed")
            entry = ConnectionEntry(connection_id=connection_id, websocket=websocket)
            self._connections[connection_id] = entry
        logger.debug(f"Registered connection {connection_id}")
        return entry

    async def unregister(self, connection_id: str) -> None:
        """Remove a connection. Unknown ids are ignored."""
        async with self._lock:
            entry = self._connections.pop(connection_id, None)
        if entry is not None:
            logger.debug(f"Unregistered connection {connection_id}")

    async def subscribe(
        self,
        connection_id: str,
        topics: tuple[str, ...] | list[str] = DEFAULT_TOPICS,
        user_id: str | None = None,
    ) -> None:
        """Subscribe a connection to topics and bind it to a user."""
        async with self._lock:
            entry = self._connections.get(connection_id)
            if entry is None:
                return
            entry.topics.update(topics)
            if user_id is not None:
                entry.user_id = user_id

    async def broadcast(
        self,
        topic: str,
        message: dict[str, Any],
        exclude: str | None = None,
    ) -> int:
        """
        Send a message to every connection subscribed to a topic.

        Args:
            topic: Topic name
            message: JSON-serializable payload
            exclude: Connection id that should not receive the message

        Returns:
            Number of connections the message was delivered to
        """
        async with self._lock:
            targets = [
                entry
                for entry in self._connections.values()
                if topic in entry.topics and entry.connection_id != exclude
            ]

        delivered = 0
        for entry in targets:
            try:
                await entry.websocket.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Broadcast to connection {entry.connection_id} failed: {e}")
        return delivered

    async def close_all(self, code: int = 1001, reason: str = "Server shutting down") -> None:
        """Close every connection and refuse new registrations."""
        async with self._lock:
            self._closed = True
            entries = list(self._connections.values())
            self._connections.clear()

        for entry in entries:
            if entry.websocket.client_state == WebSocketState.CONNECTED:
                try:
                    await entry.websocket.close(code=code, reason=reason)
                except Exception as e:
                    logger.debug(f"Closing connection {entry.connection_id} failed: {e}")

        logger.info(f"Closed {len(entries)} WebSocket connections")

    def get(self, connection_id: str) -> ConnectionEntry | None:
        return self._connections.get(connection_id)

    @property
    def count(self) -> int:
        """Number of registered connections."""
        return len(self._connections)
