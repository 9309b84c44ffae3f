"""
Account lifecycle service.

This module provides:
- Create account with primary admin and bulk admin/user reassignment
- Edit account details and primary admin
- Delete account, moving its users and child accounts to the nearest
  surviving ancestor
- Assign users from the actor's main or own account
- List the accounts visible to the actor

Every operation checks permission before touching state and commits exactly
once. If anything fails the caller's session is rolled back, so no partial
reassignment is ever visible.

Reassignments are conditional updates keyed on the user's expected current
account. Candidate rows are also locked with SELECT ... FOR UPDATE, so two
concurrent requests can never move the same user to two different accounts.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from orgsync.core.sanitize import sanitize_optional, sanitize_text
from orgsync.exceptions import (
    BadRequestError,
    ConflictError,
    InsufficientPermissionsError,
    NotFoundError,
)
from orgsync.models.account import Account
from orgsync.models.enums import AccountType, AdminType, UserRole
from orgsync.models.user import User
from orgsync.repositories.account_repository import AccountRepository
from orgsync.repositories.user_repository import UserRepository
from orgsync.schemas.account import AccountCreate, AccountDelete, AccountEdit, AssignUsers
from orgsync.services.permission_service import PermissionService

logger = logging.getLogger(__name__)


@dataclass
class AccountCreation:
    """Outcome of create_account."""

    account: Account
    primary_admin: User
    admins: list[User] = field(default_factory=list)
    users: list[User] = field(default_factory=list)
    skipped_admin_ids: list[str] = field(default_factory=list)
    skipped_user_ids: list[str] = field(default_factory=list)


@dataclass
class UserAssignment:
    """Outcome of assign_users."""

    account_id: str
    users: list[User] = field(default_factory=list)
    skipped_user_ids: list[str] = field(default_factory=list)


@dataclass
class AccountDeletion:
    """Outcome of delete_account."""

    account_id: str
    reassigned_to: str | None
    users_moved: int = 0
    children_moved: int = 0


@dataclass
class AccountWithCount:
    """Account together with its number of users."""

    account: Account
    user_count: int


def _unique(ids: list[str]) -> list[str]:
    """Drop duplicate ids, keeping the first occurrence."""
    return list(dict.fromkeys(ids))


class AccountService:
    """
    Service class for account lifecycle operations.

    All methods require an active database session and an authenticated
    actor whose account relationship is loaded.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize AccountService with database session.

        Args:
            session: Async database session
        """
        self.session = session
        self.account_repo = AccountRepository(session)
        self.user_repo = UserRepository(session)
        self.permission_service = PermissionService(session)

    async def create_account(self, actor: User, data: AccountCreate) -> AccountCreation:
        """
        Create a child account and move admins and users into it.

        Only unlimited admins of a main account may create accounts. The
        primary admin, and every admin and user moved, must currently belong
        to the actor's own account. Requested ids that are not eligible
        (wrong role, other account, unknown, or moved concurrently) are
        skipped and returned in the result.

        Args:
            actor: Authenticated admin
            data: Account details and ids to reassign

        Returns:
            AccountCreation with the new account and final user states

        Raises:
            InsufficientPermissionsError: If actor is not an unlimited main admin
            NotFoundError: If the parent account or the primary admin is not found
            BadRequestError: If the account type is more general than its parent's
            ConflictError: If the primary admin was moved by a concurrent request
        """
        self.permission_service.require_main_unlimited_admin(actor, "accounts.create")

        parent = await self.account_repo.get_by_id(data.parent_id)
        if parent is None:
            logger.warning(
                f"User {actor.id} attempted to create account under missing parent {data.parent_id}"
            )
            raise NotFoundError("Parent account")

        if data.type.level < parent.type.level:
            raise BadRequestError(
                f"A {data.type.value} account cannot be placed under a {parent.type.value} account"
            )

        primary_admin = await self.user_repo.get_by_id(data.primary_admin_id)
        if (
            primary_admin is None
            or primary_admin.role != UserRole.admin
            or primary_admin.account_id != actor.account_id
        ):
            logger.warning(
                f"User {actor.id} attempted to create account with ineligible "
                f"primary admin {data.primary_admin_id}"
            )
            raise NotFoundError("Primary admin", message="Primary admin not found under your account")

        account = Account(
            name=self._clean_name(data.name),
            description=sanitize_optional(data.description),
            type=data.type,
            parent_id=parent.id,
            country=sanitize_text(data.country),
            primary_admin_id=primary_admin.id,
        )
        account = await self.account_repo.add(account)

        moved = await self.user_repo.reassign(
            primary_admin.id,
            expected_account_id=actor.account_id,
            new_account_id=account.id,
            admin_type=data.admin_type,
        )
        if not moved:
            logger.warning(
                f"Primary admin {primary_admin.id} was moved concurrently while creating account"
            )
            raise ConflictError("Primary admin was reassigned by another request")

        admin_ids = [i for i in _unique(data.admin_ids) if i != primary_admin.id]
        moved_admin_ids = await self._move_candidates(
            admin_ids, [actor.account_id], account.id, role=UserRole.admin
        )

        user_ids = [i for i in _unique(data.user_ids) if i != primary_admin.id]
        moved_user_ids = await self._move_candidates(
            user_ids, [actor.account_id], account.id, role=UserRole.user
        )

        await self.session.commit()

        skipped_admin_ids = [i for i in admin_ids if i not in moved_admin_ids]
        skipped_user_ids = [i for i in user_ids if i not in moved_user_ids]
        if skipped_admin_ids or skipped_user_ids:
            logger.info(
                f"Account {account.id} creation skipped admins {skipped_admin_ids} "
                f"and users {skipped_user_ids}"
            )

        refreshed = {
            user.id: user
            for user in await self.user_repo.get_many_fresh(
                [primary_admin.id, *moved_admin_ids, *moved_user_ids]
            )
        }

        logger.info(
            f"User {actor.id} created {account.type.value} account {account.id} "
            f"({account.name}) under {parent.id} with primary admin {primary_admin.id}"
        )

        return AccountCreation(
            account=account,
            primary_admin=refreshed[primary_admin.id],
            admins=[refreshed[i] for i in moved_admin_ids],
            users=[refreshed[i] for i in moved_user_ids],
            skipped_admin_ids=skipped_admin_ids,
            skipped_user_ids=skipped_user_ids,
        )

    async def edit_account(self, actor: User, data: AccountEdit) -> Account:
        """
        Overwrite the provided fields of an account.

        Args:
            actor: Authenticated admin
            data: Account id and the fields to overwrite

        Returns:
            Updated account

        Raises:
            InsufficientPermissionsError: If actor may not operate on the account
            NotFoundError: If the new primary admin is not an existing admin
        """
        await self.permission_service.require_permission(actor, data.account_id, "accounts.edit")

        account = await self.account_repo.get_by_id(data.account_id)
        if account is None:
            raise NotFoundError("Account")

        provided = data.model_fields_set

        if data.name is not None:
            account.name = self._clean_name(data.name)
        if "description" in provided:
            account.description = sanitize_optional(data.description)
        if data.country is not None:
            account.country = sanitize_text(data.country)
        if data.primary_admin_id is not None:
            new_admin = await self.user_repo.get_by_id(data.primary_admin_id)
            if new_admin is None or new_admin.role != UserRole.admin:
                logger.warning(
                    f"User {actor.id} attempted to set missing admin "
                    f"{data.primary_admin_id} as primary admin of {account.id}"
                )
                raise NotFoundError("Primary admin")
            account.primary_admin_id = new_admin.id

        account = await self.account_repo.update(account)
        await self.session.commit()

        logger.info(f"User {actor.id} edited account {account.id} (fields: {sorted(provided)})")
        return account

    async def delete_account(self, actor: User, data: AccountDelete) -> AccountDeletion:
        """
        Delete an account after moving its users and child accounts.

        Users and child accounts move to the account's parent or, when the
        parent cannot be resolved, to the actor's organization main account.
        An account that still holds users or children and has no surviving
        ancestor is not deleted.

        Args:
            actor: Authenticated admin
            data: Account to delete

        Returns:
            AccountDeletion describing what was moved where

        Raises:
            InsufficientPermissionsError: If actor may not operate on the account
            ConflictError: If users or children have nowhere to go
        """
        await self.permission_service.require_permission(actor, data.account_id, "accounts.delete")

        account = await self.account_repo.get_for_update(data.account_id)
        if account is None:
            raise NotFoundError("Account")

        destination = await self._surviving_ancestor(actor, account)
        user_count = await self.user_repo.count_by_account(account.id)
        child_count = await self.account_repo.count_children(account.id)

        if destination is None:
            if user_count or child_count:
                logger.error(
                    f"Refusing to delete account {account.id}: no surviving ancestor for "
                    f"{user_count} users and {child_count} child accounts, "
                    "operator action required"
                )
                raise ConflictError(
                    "Account still has users or child accounts and no ancestor to receive them"
                )
            logger.warning(f"Deleting empty account {account.id} with no surviving ancestor")
            users_moved = children_moved = 0
        else:
            users_moved = await self.user_repo.reassign_all(account.id, destination.id)
            children_moved = await self.account_repo.reparent_children(account.id, destination.id)

        await self.account_repo.delete_by_id(account.id)
        await self.session.commit()

        logger.info(
            f"User {actor.id} deleted account {account.id}; moved {users_moved} users and "
            f"{children_moved} child accounts to {destination.id if destination else None}"
        )

        return AccountDeletion(
            account_id=account.id,
            reassigned_to=destination.id if destination else None,
            users_moved=users_moved,
            children_moved=children_moved,
        )

    async def assign_users(self, actor: User, data: AssignUsers) -> UserAssignment:
        """
        Move users from the actor's main or own account to another account.

        Users currently under any other account are skipped.

        Args:
            actor: Authenticated admin
            data: Destination account and users to move

        Returns:
            UserAssignment with moved users and skipped ids

        Raises:
            InsufficientPermissionsError: If actor may not operate on the account
        """
        await self.permission_service.require_permission(
            actor, data.account_id, "accounts.assignUsers"
        )

        account = await self.account_repo.get_by_id(data.account_id)
        if account is None:
            raise NotFoundError("Account")

        source_ids = [actor.account_id]
        main_account = await self.permission_service.resolve_main_account(actor)
        if main_account is not None and main_account.id != actor.account_id:
            source_ids.append(main_account.id)

        user_ids = _unique(data.user_ids)
        moved_ids = await self._move_candidates(user_ids, source_ids, account.id)
        await self.session.commit()

        skipped = [i for i in user_ids if i not in moved_ids]
        users = await self.user_repo.get_many_fresh(moved_ids)

        logger.info(
            f"User {actor.id} assigned {len(moved_ids)} users to account {account.id}"
            + (f", skipped {skipped}" if skipped else "")
        )
        return UserAssignment(account_id=account.id, users=users, skipped_user_ids=skipped)

    async def list_accounts(self, actor: User) -> list[AccountWithCount]:
        """
        List the accounts visible to the actor, with user counts.

        Unlimited main admins see every account. Other admins see accounts at
        or below their own account's level, their own account, and accounts
        they are the primary admin of.

        Raises:
            InsufficientPermissionsError: If actor is not an admin
        """
        if actor.is_main_unlimited_admin:
            accounts = await self.account_repo.list_all()
        elif actor.role == UserRole.admin:
            accounts = await self.account_repo.list_visible_to(
                AccountType.at_or_below(actor.account.type),
                account_id=actor.account_id,
                user_id=actor.id,
            )
        else:
            logger.warning(f"Permission denied for user {actor.id} on accounts.get: not an admin")
            raise InsufficientPermissionsError("Only admins can list accounts")

        counts = await self.account_repo.count_users_by_account([a.id for a in accounts])
        logger.debug(f"User {actor.id} listed {len(accounts)} accounts")
        return [AccountWithCount(account=a, user_count=counts.get(a.id, 0)) for a in accounts]

    async def _move_candidates(
        self,
        user_ids: list[str],
        source_account_ids: list[str],
        destination_id: str,
        role: UserRole | None = None,
    ) -> list[str]:
        """Move eligible users and return the ids actually moved, in request order."""
        candidates = await self.user_repo.get_candidates_for_update(
            user_ids, source_account_ids, role=role
        )
        by_id = {candidate.id: candidate for candidate in candidates}

        moved = []
        for user_id in user_ids:
            candidate = by_id.get(user_id)
            if candidate is None:
                continue
            admin_type = None
            if candidate.role == UserRole.admin and candidate.admin_type is None:
                admin_type = AdminType.limited
            if await self.user_repo.reassign(
                candidate.id,
                expected_account_id=candidate.account_id,
                new_account_id=destination_id,
                admin_type=admin_type,
            ):
                moved.append(candidate.id)
        return moved

    async def _surviving_ancestor(self, actor: User, account: Account) -> Account | None:
        """Nearest account that will still exist after ``account`` is deleted."""
        if account.parent_id is not None:
            parent = await self.account_repo.get_by_id(account.parent_id)
            if parent is not None:
                return parent
            logger.error(f"Account {account.id} references missing parent {account.parent_id}")

        main_account = await self.permission_service.resolve_main_account(actor)
        if main_account is not None and main_account.id != account.id:
            return main_account
        return None

    @staticmethod
    def _clean_name(name: str) -> str:
        cleaned = sanitize_text(name)
        if not cleaned:
            raise BadRequestError("Account name cannot be empty")
        return cleaned
