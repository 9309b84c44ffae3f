"""
User management service.

This module provides:
- Create user (admins and plain users) under an existing account
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from orgsync.core.sanitize import sanitize_text
from orgsync.core.security import hash_password
from orgsync.exceptions import AlreadyExistsError, NotFoundError
from orgsync.models.enums import AdminType, UserRole
from orgsync.models.user import User
from orgsync.repositories.account_repository import AccountRepository
from orgsync.repositories.user_repository import UserRepository
from orgsync.schemas.user import UserCreate
from orgsync.services.permission_service import PermissionService

logger = logging.getLogger(__name__)


class UserService:
    """
    Service class for user management operations.

    Only unlimited admins of a main account may create users.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize UserService with database session.

        Args:
            session: Async database session
        """
        self.session = session
        self.user_repo = UserRepository(session)
        self.account_repo = AccountRepository(session)
        self.permission_service = PermissionService(session)

    async def create_user(self, actor: User, data: UserCreate) -> User:
        """
        Create a user under an existing account.

        Args:
            actor: Authenticated admin
            data: User details

        Returns:
            Created User instance

        Raises:
            InsufficientPermissionsError: If actor is not an unlimited main admin
            NotFoundError: If the account does not exist
            AlreadyExistsError: If the email is already used (also when a
                concurrent request inserted it first)
        """
        self.permission_service.require_main_unlimited_admin(actor, "users.create")

        account = await self.account_repo.get_by_id(data.account_id)
        if account is None:
            raise NotFoundError("Account")

        if await self.user_repo.email_exists(data.email):
            logger.warning(f"User {actor.id} attempted to create duplicate user {data.email}")
            raise AlreadyExistsError("User", message="A user with this email already exists")

        admin_type = None
        if data.role == UserRole.admin:
            admin_type = data.admin_type or AdminType.limited

        user = User(
            first_name=sanitize_text(data.first_name),
            last_name=sanitize_text(data.last_name),
            email=data.email,
            phone=sanitize_text(data.phone),
            role=data.role,
            admin_type=admin_type,
            account_id=account.id,
            password_hash=hash_password(data.password) if data.password else None,
        )

        try:
            user = await self.user_repo.add(user)
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning(f"Concurrent creation of user {data.email} detected: {e.orig}")
            raise AlreadyExistsError("User", message="A user with this email already exists") from e

        await self.session.commit()

        logger.info(
            f"User {actor.id} created {user.role.value} {user.id} ({user.email}) "
            f"in account {account.id}"
        )
        return user
