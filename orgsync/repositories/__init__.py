"""
Database repositories for the accounts service.

This module exports all repository classes for database operations.
"""

from orgsync.repositories.account_repository import AccountRepository
from orgsync.repositories.base import BaseRepository
from orgsync.repositories.user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "AccountRepository",
    "UserRepository",
]
