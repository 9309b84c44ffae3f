"""
Pydantic schemas for inbound payloads and outbound data.
"""

from orgsync.schemas.account import (
    AccountCreate,
    AccountCreateResult,
    AccountDelete,
    AccountDeleteResult,
    AccountEdit,
    AccountListItem,
    AccountResponse,
    AssignUsers,
    AssignUsersResult,
)
from orgsync.schemas.auth import LoginRequest, LoginResponse
from orgsync.schemas.common import ApiResponse, ErrorResponse, EventMessage
from orgsync.schemas.legacy import OrganizationUsersResult, SyncSummary
from orgsync.schemas.messages import InboundMessage, parse_message, parse_payload
from orgsync.schemas.user import OrganizationUser, UserCreate, UserResponse

__all__ = [
    # Envelopes
    "ApiResponse",
    "ErrorResponse",
    "EventMessage",
    "InboundMessage",
    "parse_message",
    "parse_payload",
    # Accounts
    "AccountCreate",
    "AccountCreateResult",
    "AccountDelete",
    "AccountDeleteResult",
    "AccountEdit",
    "AccountListItem",
    "AccountResponse",
    "AssignUsers",
    "AssignUsersResult",
    # Users
    "OrganizationUser",
    "UserCreate",
    "UserResponse",
    # Auth
    "LoginRequest",
    "LoginResponse",
    # Reconciliation
    "OrganizationUsersResult",
    "SyncSummary",
]
