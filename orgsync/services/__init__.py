"""
Business logic services.

Services own the unit of work: each public operation commits once.
"""

from orgsync.services.account_service import AccountService
from orgsync.services.auth_service import AuthService
from orgsync.services.bootstrap_service import BootstrapService
from orgsync.services.legacy_client import LegacyApiClient
from orgsync.services.permission_service import PermissionService
from orgsync.services.reconciliation_service import ReconciliationService
from orgsync.services.user_service import UserService

__all__ = [
    "AccountService",
    "AuthService",
    "BootstrapService",
    "LegacyApiClient",
    "PermissionService",
    "ReconciliationService",
    "UserService",
]
