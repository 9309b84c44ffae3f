"""
User Pydantic schemas.

This module provides:
- The users.create payload
- User response schemas (plain and with account information)
"""

from datetime import datetime

from pydantic import EmailStr, Field, field_validator, model_validator

from orgsync.core.security import validate_password_strength
from orgsync.models.enums import AccountType, AdminType, UserRole
from orgsync.schemas.common import CamelModel, CamelResponse


class UserCreate(CamelModel):
    """
    Payload for users.create.

    Attributes:
        first_name: Given name
        last_name: Family name
        email: Unique email address
        phone: Phone number
        role: admin or user
        admin_type: Only meaningful for admins (defaults to limited)
        account_id: Account the user belongs to
        password: Optional password so that a new admin can log in
    """

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(default="", max_length=50)
    role: UserRole
    admin_type: AdminType | None = None
    account_id: str = Field(min_length=1, max_length=64)
    password: str | None = Field(default=None, min_length=8, max_length=128)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str | None) -> str | None:
        """Validate password strength requirements."""
        if value is not None:
            is_valid, error_message = validate_password_strength(value)
            if not is_valid:
                raise ValueError(error_message)
        return value

    @model_validator(mode="after")
    def only_admins_log_in(self) -> "UserCreate":
        """Plain users never get a password."""
        if self.role == UserRole.user and self.password is not None:
            raise ValueError("Only admins can be given a password")
        return self


class UserResponse(CamelResponse):
    """User as sent to clients. Never includes the password hash."""

    id: str
    first_name: str
    last_name: str
    email: str
    phone: str
    role: UserRole
    admin_type: AdminType | None
    account_id: str
    created_at: datetime
    updated_at: datetime


class OrganizationUser(CamelResponse):
    """User of the actor's organization, with the name and level of its account."""

    id: str
    first_name: str
    last_name: str
    email: str
    phone: str
    role: UserRole
    admin_type: AdminType | None
    account_id: str
    account_name: str
    account_type: AccountType

    @classmethod
    def from_user(cls, user) -> "OrganizationUser":
        """Build from a User whose account relationship is loaded."""
        return cls(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            phone=user.phone,
            role=user.role,
            admin_type=user.admin_type,
            account_id=user.account_id,
            account_name=user.account.name,
            account_type=user.account.type,
        )
