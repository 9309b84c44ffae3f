"""
User repository for user-specific database operations.

This module provides database operations for the User model,
including authentication lookups, locked candidate selection and
conditional reassignment between accounts.
"""

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from orgsync.models.enums import AdminType, UserRole
from orgsync.models.user import User
from orgsync.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """
    Repository for User model operations.

    Extends BaseRepository with user-specific queries:
    - Email lookups (authentication, uniqueness, reconciliation)
    - Row-locked selection of reassignment candidates
    - Conditional reassignment keyed on the expected prior account
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize UserRepository.

        Args:
            session: Async database session
        """
        super().__init__(User, session)

    async def get_by_email(self, email: str) -> User | None:
        """
        Get user by email address.

        Args:
            email: Email address to search for

        Returns:
            User instance or None if not found
        """
        query = select(User).where(User.email == email)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def email_exists(self, email: str) -> bool:
        """Check whether a user already uses an email address."""
        query = select(func.count()).select_from(User).where(User.email == email)
        result = await self.session.execute(query)
        return result.scalar_one() > 0

    async def find_existing(
        self, emails: list[str], user_ids: list[str]
    ) -> tuple[set[str], set[str]]:
        """
        Find which emails and ids are already used.

        Args:
            emails: Emails to look up
            user_ids: Ids to look up

        Returns:
            Tuple of (existing emails, existing ids)
        """
        existing_emails: set[str] = set()
        existing_ids: set[str] = set()

        if emails:
            result = await self.session.execute(select(User.email).where(User.email.in_(emails)))
            existing_emails = set(result.scalars().all())
        if user_ids:
            result = await self.session.execute(select(User.id).where(User.id.in_(user_ids)))
            existing_ids = set(result.scalars().all())

        return existing_emails, existing_ids

    async def get_candidates_for_update(
        self,
        user_ids: list[str],
        account_ids: list[str],
        role: UserRole | None = None,
    ) -> list[User]:
        """
        Select and lock the users eligible for a reassignment.

        Only users listed in ``user_ids`` that currently belong to one of
        ``account_ids`` (and have ``role`` when given) are returned. Rows are
        locked with SELECT ... FOR UPDATE until the transaction ends.

        Args:
            user_ids: Requested users
            account_ids: Accounts the users must currently belong to
            role: Optional role filter

        Returns:
            Locked User instances, in no particular order
        """
        if not user_ids or not account_ids:
            return []

        query = (
            select(User)
            .where(User.id.in_(user_ids), User.account_id.in_(account_ids))
            .with_for_update()
        )
        if role is not None:
            query = query.where(User.role == role)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def reassign(
        self,
        user_id: str,
        expected_account_id: str,
        new_account_id: str,
        admin_type: AdminType | None = None,
    ) -> bool:
        """
        Move a user to another account if it is still where we expect it.

        The update is conditional on the user's current account, so two
        concurrent operations can never both move the same user: the second
        one matches no row.

        Args:
            user_id: User to move
            expected_account_id: Account the user must currently belong to
            new_account_id: Destination account
            admin_type: Admin type to set together with the move (admins only)

        Returns:
            True if the user was moved, False if it had been moved meanwhile
        """
        values: dict[str, object] = {"account_id": new_account_id}
        if admin_type is not None:
            values["admin_type"] = admin_type

        result = await self.session.execute(
            update(User)
            .where(User.id == user_id, User.account_id == expected_account_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        return result.rowcount == 1

    async def reassign_all(self, from_account_id: str, to_account_id: str) -> int:
        """
        Move every user of an account to another account.

        Args:
            from_account_id: Account being emptied
            to_account_id: Destination account

        Returns:
            Number of users moved
        """
        result = await self.session.execute(
            update(User)
            .where(User.account_id == from_account_id)
            .values(account_id=to_account_id)
            .execution_options(synchronize_session=False)
        )
        await self.session.flush()
        return result.rowcount

    async def count_by_account(self, account_id: str) -> int:
        """Count the users assigned to an account."""
        query = select(func.count()).select_from(User).where(User.account_id == account_id)
        result = await self.session.execute(query)
        return result.scalar_one()

    async def get_many_fresh(self, user_ids: list[str]) -> list[User]:
        """
        Reload users from the database, overwriting identity-map state.

        Used after conditional bulk updates (which bypass the ORM) so that the
        returned instances, including their account relationship, reflect the
        committed values.

        Args:
            user_ids: Users to reload

        Returns:
            User instances ordered by id
        """
        if not user_ids:
            return []

        query = (
            select(User)
            .where(User.id.in_(user_ids))
            .options(selectinload(User.account))
            .order_by(User.id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_by_accounts(self, account_ids: list[str]) -> list[User]:
        """
        Get every user assigned to one of the given accounts.

        Args:
            account_ids: Accounts to list users for

        Returns:
            User instances with their account loaded, ordered by last name
        """
        if not account_ids:
            return []

        query = (
            select(User)
            .where(User.account_id.in_(account_ids))
            .options(selectinload(User.account))
            .order_by(User.last_name, User.first_name, User.id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())
