"""
Account model.

This module defines:
- Account: A node of the organizational hierarchy

Architecture:
- Accounts form a tree through parent_id (NULL only for root accounts)
- Root accounts have type "main" and represent one organization
- Users belong to exactly one account (users.account_id)
- Every account may designate a primary admin (primary_admin_id)

Hierarchy walks (permission checks, main account resolution) are done with
one point query per level in the service layer, bounded by a max depth.
Collections are never lazy loaded: they are declared lazy="raise" and loaded
explicitly when a query needs them.
"""

from typing import TYPE_CHECKING

from sqlalchemy import Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orgsync.models.base import ID_LENGTH, Base
from orgsync.models.enums import AccountType
from orgsync.models.mixins import TimestampMixin

if TYPE_CHECKING:
    from orgsync.models.user import User


class Account(Base, TimestampMixin):
    """
    Organizational account.

    Attributes:
        id: Text primary key (stable for the lifetime of the account)
        name: Display name (markup stripped before persistence)
        description: Optional free text (markup stripped)
        type: Hierarchy level (main, institutional, regional, district,
            branch, department)
        parent_id: Parent account (NULL only for root accounts)
        country: Country name (markup stripped)
        primary_admin_id: User administering this account (validated at
            write time; no foreign key to avoid a users/accounts cycle)
        external_key: Stable unique key for idempotent find-or-create of
            root accounts (bootstrap, reconciliation). NULL for accounts
            created through the API.
        created_at: When the account was created
        updated_at: When the account was last updated

    Relationships:
        parent: Parent Account (never lazy loaded)
        children: Child accounts (never lazy loaded)
        users: Users assigned to this account (never lazy loaded)

    Deletion:
        parent_id and users.account_id use ON DELETE RESTRICT. The account
        service moves users and child accounts to the nearest surviving
        ancestor before deleting, so no user is ever orphaned.
    """

    __tablename__ = "accounts"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    type: Mapped[AccountType] = mapped_column(
        Enum(AccountType, name="account_type_enum"),
        nullable=False,
        index=True,
    )

    parent_id: Mapped[str | None] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )

    country: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    primary_admin_id: Mapped[str | None] = mapped_column(
        String(ID_LENGTH),
        nullable=True,
        index=True,
    )

    external_key: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        unique=True,
    )

    parent: Mapped["Account | None"] = relationship(
        "Account",
        remote_side="Account.id",
        back_populates="children",
        lazy="raise",
    )

    children: Mapped[list["Account"]] = relationship(
        "Account",
        back_populates="parent",
        lazy="raise",
        passive_deletes=True,
    )

    users: Mapped[list["User"]] = relationship(
        "User",
        back_populates="account",
        lazy="raise",
        passive_deletes=True,
    )

    @property
    def is_root(self) -> bool:
        """True when the account has no parent."""
        return self.parent_id is None

    def __repr__(self) -> str:
        """String representation of Account."""
        return f"Account(id={self.id}, name={self.name}, type={self.type.value})"
