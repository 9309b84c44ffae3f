"""
Permission service for account hierarchy access control.

This module decides whether an acting admin may operate on a target account.

Rules, evaluated in order once the target account has been resolved:
    1. An unlimited admin of a main account may operate on every account.
    2. Users that are not admins may not operate on any account.
    3. Otherwise walk from the target account up to its root. Permission is
       granted when a visited account (the target included) is the admin's
       own account, or names the admin as its primary admin.

The check fails closed: a missing target, a dangling parent reference, a
chain deeper than MAX_HIERARCHY_DEPTH or a database error all deny, and every
denial is logged with the rule that failed.

Usage:
    permission_service = PermissionService(session)
    if await permission_service.has_permission(actor, account_id):
        ...
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from orgsync.exceptions import InsufficientPermissionsError
from orgsync.models.account import Account
from orgsync.models.enums import AccountType, UserRole
from orgsync.models.user import User
from orgsync.repositories.account_repository import MAX_HIERARCHY_DEPTH, AccountRepository

logger = logging.getLogger(__name__)


class PermissionService:
    """
    Service for checking hierarchy permissions.

    Hierarchy walks issue one point query per level. Trees are at most a few
    levels deep, and the walk never visits more than MAX_HIERARCHY_DEPTH
    accounts.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize permission service.

        Args:
            session: Async database session
        """
        self.session = session
        self.account_repo = AccountRepository(session)

    def _deny(self, actor: User, target_account_id: str, rule: str) -> bool:
        logger.warning(
            f"Permission denied for user {actor.id} on account {target_account_id}: {rule}"
        )
        return False

    async def has_permission(self, actor: User, target_account_id: str) -> bool:
        """
        Check whether an actor may operate on an account.

        Never raises: lookup errors deny.

        Args:
            actor: Authenticated user (account relationship loaded)
            target_account_id: Account the actor wants to operate on

        Returns:
            True if permission is granted, False otherwise
        """
        try:
            target = await self.account_repo.get_by_id(target_account_id)
            if target is None:
                return self._deny(actor, target_account_id, "target account not found")

            if actor.is_main_unlimited_admin:
                return True

            if actor.role != UserRole.admin:
                return self._deny(actor, target_account_id, "actor is not an admin")

            current = target
            for _ in range(MAX_HIERARCHY_DEPTH):
                if current.id == actor.account_id or current.primary_admin_id == actor.id:
                    return True

                if current.parent_id is None:
                    return self._deny(
                        actor, target_account_id, "no ancestor is owned or administered by actor"
                    )

                parent = await self.account_repo.get_by_id(current.parent_id)
                if parent is None:
                    logger.error(
                        f"Account {current.id} references missing parent {current.parent_id}"
                    )
                    return self._deny(actor, target_account_id, "dangling parent reference")
                current = parent

            logger.error(
                f"Ancestor chain of account {target_account_id} exceeds "
                f"{MAX_HIERARCHY_DEPTH} levels"
            )
            return self._deny(actor, target_account_id, "hierarchy depth limit exceeded")

        except SQLAlchemyError as e:
            logger.error(f"Permission lookup failed for account {target_account_id}: {e}")
            return self._deny(actor, target_account_id, "lookup error")

    async def get_main_account(self, account_id: str) -> Account | None:
        """
        Resolve the root account of the tree an account belongs to.

        Args:
            account_id: Any account of the tree

        Returns:
            The root account, or None if the chain is broken or too deep
        """
        current = await self.account_repo.get_by_id(account_id)
        for _ in range(MAX_HIERARCHY_DEPTH):
            if current is None:
                return None
            if current.parent_id is None:
                return current
            current = await self.account_repo.get_by_id(current.parent_id)

        logger.error(f"Could not resolve main account of {account_id}: depth limit exceeded")
        return None

    async def resolve_main_account(self, actor: User) -> Account | None:
        """
        Resolve the actor's organization main account.

        The actor's own account is returned directly when it is a main account.
        """
        if actor.account is not None and actor.account.type == AccountType.main:
            return actor.account
        return await self.get_main_account(actor.account_id)

    async def require_permission(self, actor: User, account_id: str, action: str) -> None:
        """
        Require permission on an account.

        Args:
            actor: Authenticated user
            account_id: Target account
            action: Action name, used in the error message

        Raises:
            InsufficientPermissionsError: If permission is denied
        """
        if not await self.has_permission(actor, account_id):
            raise InsufficientPermissionsError(
                f"You do not have permission to perform {action} on this account"
            )

    def require_main_unlimited_admin(self, actor: User, action: str) -> None:
        """
        Require the actor to be an unlimited admin of a main account.

        Raises:
            InsufficientPermissionsError: If the actor is anything else
        """
        if not actor.is_main_unlimited_admin:
            logger.warning(
                f"Permission denied for user {actor.id} on {action}: "
                "requires an unlimited admin of a main account"
            )
            raise InsufficientPermissionsError(
                f"Only unlimited admins of a main account can perform {action}"
            )
