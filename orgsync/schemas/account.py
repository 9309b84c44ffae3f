"""
Account Pydantic schemas.

This module provides:
- Inbound payloads for accounts.create, accounts.edit, accounts.delete and
  accounts.assignUsers
- Account response schemas
- Result schemas for bulk reassignment (including skipped ids)
"""

from datetime import datetime

from pydantic import Field

from orgsync.models.enums import AccountType, AdminType
from orgsync.schemas.common import CamelModel, CamelResponse
from orgsync.schemas.user import UserResponse


class AccountCreate(CamelModel):
    """
    Payload for accounts.create.

    Attributes:
        name: Account name (markup is stripped before persistence)
        description: Optional description
        type: Hierarchy level of the new account
        parent_id: Existing parent account
        country: Country name
        primary_admin_id: Admin under the actor's account that becomes the
            primary admin of the new account
        admin_type: Admin type given to the primary admin
        admin_ids: Additional admins to move to the new account
        user_ids: Users to move to the new account
    """

    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    type: AccountType
    parent_id: str = Field(min_length=1, max_length=64)
    country: str = Field(min_length=1, max_length=100)
    primary_admin_id: str = Field(min_length=1, max_length=64)
    admin_type: AdminType = Field(default=AdminType.limited)
    admin_ids: list[str] = Field(default_factory=list)
    user_ids: list[str] = Field(default_factory=list)


class AccountEdit(CamelModel):
    """
    Payload for accounts.edit.

    Every provided field overwrites the stored value.
    """

    account_id: str = Field(min_length=1, max_length=64)
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    country: str | None = Field(default=None, min_length=1, max_length=100)
    primary_admin_id: str | None = Field(default=None, min_length=1, max_length=64)


class AccountDelete(CamelModel):
    """Payload for accounts.delete."""

    account_id: str = Field(min_length=1, max_length=64)


class AssignUsers(CamelModel):
    """Payload for accounts.assignUsers."""

    account_id: str = Field(min_length=1, max_length=64)
    user_ids: list[str] = Field(default_factory=list)


class AccountResponse(CamelResponse):
    """Account as sent to clients."""

    id: str
    name: str
    description: str | None
    type: AccountType
    parent_id: str | None
    country: str
    primary_admin_id: str | None
    created_at: datetime
    updated_at: datetime


class AccountListItem(AccountResponse):
    """Account with the number of users assigned to it (accounts.get)."""

    user_count: int = 0


class AccountCreateResult(CamelResponse):
    """
    Result of accounts.create.

    Attributes:
        account: Created account
        primary_admin: Primary admin after reassignment
        admins: Admins moved to the new account
        users: Users moved to the new account
        skipped_admin_ids: Requested admins that were not eligible
        skipped_user_ids: Requested users that were not eligible
    """

    account: AccountResponse
    primary_admin: UserResponse
    admins: list[UserResponse]
    users: list[UserResponse]
    skipped_admin_ids: list[str]
    skipped_user_ids: list[str]


class AssignUsersResult(CamelResponse):
    """Result of accounts.assignUsers."""

    account_id: str
    users: list[UserResponse]
    skipped_user_ids: list[str]


class AccountDeleteResult(CamelResponse):
    """
    Result of accounts.delete.

    Attributes:
        account_id: Deleted account
        reassigned_to: Account that received the users and child accounts
            (None when the deleted account was empty and had no ancestor)
        users_moved: Number of users moved
        children_moved: Number of child accounts moved
    """

    account_id: str
    reassigned_to: str | None
    users_moved: int
    children_moved: int
