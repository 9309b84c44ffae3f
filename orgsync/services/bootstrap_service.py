"""
Startup bootstrap of the main account and the first administrator.

The main account is found or created by its stable external key, so restarts
and concurrently starting workers never create a second root. When
BOOTSTRAP_ADMIN_EMAIL and BOOTSTRAP_ADMIN_PASSWORD are set, an unlimited
admin is seeded under the main account (an existing user with that email is
left untouched).
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from orgsync.core.config import settings
from orgsync.core.security import hash_password
from orgsync.models.account import Account
from orgsync.models.enums import AccountType, AdminType, UserRole
from orgsync.models.user import User
from orgsync.repositories.account_repository import AccountRepository
from orgsync.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


class BootstrapService:
    """Service that prepares an empty database for its first login."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.account_repo = AccountRepository(session)
        self.user_repo = UserRepository(session)

    async def run(self) -> Account:
        """
        Ensure the main account (and optionally the first admin) exist.

        Returns:
            The main account
        """
        main_account = await self.ensure_main_account()
        if settings.bootstrap_admin_email and settings.bootstrap_admin_password:
            await self.ensure_admin(main_account)
        return main_account

    async def ensure_main_account(self) -> Account:
        """Find or create the main account keyed by settings.main_account_key."""
        key = settings.main_account_key
        account = await self.account_repo.get_by_external_key(key)
        if account is not None:
            logger.info(f"Main account {account.id} ({account.name}) already exists")
            return account

        try:
            account = await self.account_repo.add(
                Account(
                    name=settings.main_account_name,
                    description=settings.main_account_description,
                    type=AccountType.main,
                    parent_id=None,
                    country=settings.main_account_country,
                    external_key=key,
                )
            )
            await self.session.commit()
        except IntegrityError:
            # Another worker created it first
            await self.session.rollback()
            account = await self.account_repo.get_by_external_key(key)
            if account is None:
                raise
            return account

        logger.info(f"Created main account {account.id} ({account.name})")
        return account

    async def ensure_admin(self, main_account: Account) -> User:
        """Seed the first unlimited admin under the main account."""
        email = settings.bootstrap_admin_email
        existing = await self.user_repo.get_by_email(email)
        if existing is not None:
            logger.info(f"Bootstrap admin {email} already exists")
            return existing

        try:
            admin = await self.user_repo.add(
                User(
                    first_name=settings.bootstrap_admin_first_name,
                    last_name=settings.bootstrap_admin_last_name,
                    email=email,
                    phone=settings.bootstrap_admin_phone,
                    role=UserRole.admin,
                    admin_type=AdminType.unlimited,
                    account_id=main_account.id,
                    password_hash=hash_password(settings.bootstrap_admin_password),
                )
            )
            if main_account.primary_admin_id is None:
                main_account.primary_admin_id = admin.id
                await self.account_repo.update(main_account)
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            existing = await self.user_repo.get_by_email(email)
            if existing is None:
                raise
            return existing

        logger.info(f"Created bootstrap admin {admin.id} ({email})")
        return admin
