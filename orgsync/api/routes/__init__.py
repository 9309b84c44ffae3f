"""
Application routers.
"""

from orgsync.api.routes import health, root, ws

__all__ = ["health", "root", "ws"]
