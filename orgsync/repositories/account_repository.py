"""
Account repository for database operations.

This module provides database operations for the Account model, including:
- Standard CRUD operations (inherited from BaseRepository)
- Find-by-stable-key for idempotent root account creation
- Hierarchy-scoped listings and subtree traversal
- Bulk re-parenting of child accounts
"""

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from orgsync.models.account import Account
from orgsync.models.enums import AccountType
from orgsync.models.user import User
from orgsync.repositories.base import BaseRepository

# Upper bound on levels visited by any hierarchy traversal. Real trees have at
# most six levels; anything deeper indicates malformed data.
MAX_HIERARCHY_DEPTH = 32


class AccountRepository(BaseRepository[Account]):
    """
    Repository for Account model database operations.

    Usage:
        account_repo = AccountRepository(session)
        root = await account_repo.get_by_external_key("main:ministry-of-education")
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize Account repository.

        Args:
            session: Async database session
        """
        super().__init__(Account, session)

    async def get_by_external_key(self, external_key: str) -> Account | None:
        """
        Get an account by its stable external key.

        Args:
            external_key: Deterministic key assigned at creation

        Returns:
            Account instance or None if not found
        """
        query = select(Account).where(Account.external_key == external_key)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_for_update(self, account_id: str) -> Account | None:
        """
        Get account with row-level lock (SELECT ... FOR UPDATE).

        The row lock is held until the transaction commits or rolls back.

        Args:
            account_id: ID of the account

        Returns:
            Account instance with row lock or None if not found
        """
        query = select(Account).where(Account.id == account_id).with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_all(self) -> list[Account]:
        """
        Get every account ordered by hierarchy level then name.

        Returns:
            List of all Account instances
        """
        query = select(Account).order_by(Account.type, Account.name)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_visible_to(
        self,
        account_types: list[AccountType],
        account_id: str,
        user_id: str,
    ) -> list[Account]:
        """
        Get accounts visible to an administrator who is not an unlimited main admin.

        An account is visible when its type is one of ``account_types``
        (the admin's level and below), when it is the admin's own account,
        or when the admin is its primary admin.

        Args:
            account_types: Hierarchy levels at or below the admin's level
            account_id: The admin's own account
            user_id: The admin's user id

        Returns:
            List of visible Account instances
        """
        query = (
            select(Account)
            .where(
                or_(
                    Account.type.in_(account_types),
                    Account.id == account_id,
                    Account.primary_admin_id == user_id,
                )
            )
            .order_by(Account.type, Account.name)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_users_by_account(self, account_ids: list[str]) -> dict[str, int]:
        """
        Count users per account.

        Args:
            account_ids: Accounts to count users for

        Returns:
            Mapping of account id to number of users (accounts without users
            are absent from the mapping)
        """
        if not account_ids:
            return {}

        query = (
            select(User.account_id, func.count(User.id))
            .where(User.account_id.in_(account_ids))
            .group_by(User.account_id)
        )
        result = await self.session.execute(query)
        return {account_id: count for account_id, count in result.all()}

    async def count_children(self, account_id: str) -> int:
        """Count direct child accounts."""
        query = select(func.count()).select_from(Account).where(Account.parent_id == account_id)
        result = await self.session.execute(query)
        return result.scalar_one()

    async def get_subtree_ids(self, root_id: str) -> list[str]:
        """
        Collect the ids of an account and all of its descendants.

        Walks the tree level by level (one query per level) and stops after
        MAX_HIERARCHY_DEPTH levels. Ids already visited are never expanded
        again, so a cycle in malformed data cannot loop.

        Args:
            root_id: Account at the top of the subtree

        Returns:
            List of account ids, root first
        """
        collected = [root_id]
        visited = {root_id}
        frontier = [root_id]

        for _ in range(MAX_HIERARCHY_DEPTH):
            if not frontier:
                break
            query = select(Account.id).where(Account.parent_id.in_(frontier))
            result = await self.session.execute(query)
            frontier = [child_id for child_id in result.scalars().all() if child_id not in visited]
            visited.update(frontier)
            collected.extend(frontier)

        return collected

    async def reparent_children(self, account_id: str, new_parent_id: str) -> int:
        """
        Move every direct child of an account under another account.

        Args:
            account_id: Current parent
            new_parent_id: New parent

        Returns:
            Number of child accounts moved
        """
        result = await self.session.execute(
            update(Account)
            .where(Account.parent_id == account_id)
            .values(parent_id=new_parent_id)
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        return result.rowcount

    async def delete_by_id(self, account_id: str) -> bool:
        """
        Delete an account row without loading its collections.

        Users and child accounts must have been moved beforehand; the foreign
        keys are ON DELETE RESTRICT.

        Args:
            account_id: Account to delete

        Returns:
            True if a row was deleted
        """
        result = await self.session.execute(
            delete(Account)
            .where(Account.id == account_id)
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        return result.rowcount == 1
