"""
Enums for the account hierarchy and user records.

This module defines:
- AccountType: Organizational level of an account (main is the root level)
- UserRole: admin or plain user
- AdminType: Scope of an administrator (limited or unlimited)

These enums are stored as PostgreSQL ENUM types and reused by the API
schemas so that the wire values and the stored values are identical.
"""

import enum


class AccountType(str, enum.Enum):
    """
    Organizational level of an account.

    The declaration order is the hierarchy order, from the root level down:

        main < institutional < regional < district < branch < department

    A child account is expected to sit at the same or a more specific level
    than its parent. Storage does not enforce this; hierarchy-scoped account
    listings rely on it.
    """

    main = "main"
    institutional = "institutional"
    regional = "regional"
    district = "district"
    branch = "branch"
    department = "department"

    @property
    def level(self) -> int:
        """Specificity level (0 for main, 5 for department)."""
        return list(AccountType).index(self)

    @classmethod
    def at_or_below(cls, account_type: "AccountType") -> list["AccountType"]:
        """
        Return every type at the given level or a more specific one.

        Example:
            >>> AccountType.at_or_below(AccountType.district)
            [<AccountType.district: 'district'>, <AccountType.branch: 'branch'>,
             <AccountType.department: 'department'>]
        """
        return list(cls)[account_type.level:]


class UserRole(str, enum.Enum):
    """Role of a user. Only admins can log in."""

    admin = "admin"
    user = "user"


class AdminType(str, enum.Enum):
    """
    Scope of an administrator.

    Attributes:
        limited: Restricted to the assigned account (and its subtree through
            the ancestry rule)
        unlimited: Authority over the full subtree of the main account when
            the admin belongs to a main account
    """

    limited = "limited"
    unlimited = "unlimited"
