"""
Core module for the accounts service.

Exports the main configuration component.
"""

from orgsync.core.config import settings

__all__ = [
    # Config
    "settings",
]
