"""
User model.

This module defines:
- User: An administrator or plain user affiliated with one account

Users are created by administrators, by account creation requests (primary
admin and bulk assignment) and by the reconciliation with the legacy system.
Only administrators with a local password hash can log in.
"""

from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orgsync.models.base import ID_LENGTH, Base
from orgsync.models.enums import AccountType, AdminType, UserRole
from orgsync.models.mixins import TimestampMixin

if TYPE_CHECKING:
    from orgsync.models.account import Account


class User(Base, TimestampMixin):
    """
    User model.

    Attributes:
        id: Text primary key. Random UUID for users created through the API,
            "admin-<extId>" / "user-<extId>" for synchronized users
        first_name: Given name
        last_name: Family name
        email: Unique email address
        phone: Phone number (dedup key during reconciliation)
        role: admin or user
        admin_type: limited or unlimited, only set when role is admin
        account_id: Account the user currently belongs to (always exists)
        password_hash: Argon2id hash, NULL for users that cannot log in
        created_at: When the user was created
        updated_at: When the user was last updated

    Relationships:
        account: Account object (eager-loaded, needed for every permission
            decision)
    """

    __tablename__ = "users"

    first_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    last_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
    )

    phone: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="",
        index=True,
    )

    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role_enum"),
        nullable=False,
        index=True,
    )

    admin_type: Mapped[AdminType | None] = mapped_column(
        Enum(AdminType, name="admin_type_enum"),
        nullable=True,
    )

    account_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    password_hash: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    account: Mapped["Account"] = relationship(
        "Account",
        back_populates="users",
        lazy="selectin",  # Async-safe eager loading
    )

    __table_args__ = (
        CheckConstraint(
            "role = 'admin' OR admin_type IS NULL",
            name="user_role_has_no_admin_type",
        ),
    )

    @property
    def is_admin(self) -> bool:
        """True for administrators of any scope."""
        return self.role == UserRole.admin

    @property
    def is_main_unlimited_admin(self) -> bool:
        """
        True for an unlimited admin whose account is a main account.

        Requires the account relationship to be loaded (it is eager-loaded).
        """
        return (
            self.role == UserRole.admin
            and self.admin_type == AdminType.unlimited
            and self.account is not None
            and self.account.type == AccountType.main
        )

    def __repr__(self) -> str:
        """String representation of User."""
        return f"User(id={self.id}, email={self.email}, role={self.role.value})"
