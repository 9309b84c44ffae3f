"""
Database models for the accounts service.

This module exports all SQLAlchemy models and the declarative base.
Import models from this module to ensure proper initialization.
"""

from orgsync.models.account import Account
from orgsync.models.base import Base
from orgsync.models.enums import AccountType, AdminType, UserRole
from orgsync.models.mixins import TimestampMixin
from orgsync.models.user import User

__all__ = [
    # Base
    "Base",
    # Mixins
    "TimestampMixin",
    # Hierarchy models
    "Account",
    "AccountType",
    # User models
    "User",
    "UserRole",
    "AdminType",
]
