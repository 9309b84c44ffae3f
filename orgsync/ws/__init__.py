"""
WebSocket transport: connection registry, dispatcher and receive loop.
"""

from orgsync.ws.connection import serve_connection
from orgsync.ws.dispatcher import DispatchResult, MessageDispatcher
from orgsync.ws.registry import ConnectionRegistry

__all__ = [
    "ConnectionRegistry",
    "DispatchResult",
    "MessageDispatcher",
    "serve_connection",
]
