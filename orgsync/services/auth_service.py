"""
Authentication service.

This module provides:
- Admin login with Argon2id password verification
- Access credential issuing (HS256 JWT)
- Credential validation for inbound messages
"""

import logging
from dataclasses import dataclass

from jose import ExpiredSignatureError, JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from orgsync.core.config import settings
from orgsync.core.security import (
    TOKEN_TYPE_ACCESS,
    create_access_token,
    decode_token,
    verify_password,
    verify_token_type,
)
from orgsync.exceptions import InvalidCredentialsError, InvalidTokenError, TokenExpiredError
from orgsync.models.enums import UserRole
from orgsync.models.user import User
from orgsync.repositories.user_repository import UserRepository
from orgsync.schemas.auth import LoginRequest

logger = logging.getLogger(__name__)


@dataclass
class IssuedCredential:
    """Access credential issued at login."""

    token: str
    expires_in: int
    user: User


class AuthService:
    """
    Service class for authentication operations.

    Only admins with a local password hash can log in. Credentials carry the
    identity claims (id, email, role, adminType, accountId) but every inbound
    message reloads the user, so role or account changes take effect
    immediately.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize AuthService with database session.

        Args:
            session: Async database session
        """
        self.session = session
        self.user_repo = UserRepository(session)

    async def login(self, data: LoginRequest) -> IssuedCredential:
        """
        Authenticate an admin and issue an access credential.

        Args:
            data: Email and password

        Returns:
            IssuedCredential with the signed token

        Raises:
            InvalidCredentialsError: If the email is unknown, the password is
                wrong, or the user is not an admin
        """
        user = await self.user_repo.get_by_email(data.email)

        if user is None or not verify_password(data.password, user.password_hash):
            logger.warning(f"Failed login attempt for {data.email}")
            raise InvalidCredentialsError()

        if user.role != UserRole.admin:
            logger.warning(f"Login refused for non-admin user {user.id}")
            raise InvalidCredentialsError()

        token = create_access_token(
            {
                "sub": user.id,
                "id": user.id,
                "email": user.email,
                "role": user.role.value,
                "adminType": user.admin_type.value if user.admin_type else None,
                "accountId": user.account_id,
            }
        )

        logger.info(f"User {user.id} logged in")
        return IssuedCredential(
            token=token,
            expires_in=settings.access_token_expire_minutes * 60,
            user=user,
        )

    async def authenticate(self, credential: str | None) -> User:
        """
        Resolve the user behind an access credential.

        Args:
            credential: Token sent with the inbound message

        Returns:
            The authenticated User (account relationship loaded)

        Raises:
            InvalidTokenError: If the credential is missing, invalid, not an
                access credential, or its user no longer exists
            TokenExpiredError: If the credential has expired
        """
        if not credential:
            raise InvalidTokenError("Authentication required")

        try:
            token_data = decode_token(credential)
        except ExpiredSignatureError as e:
            logger.info("Authentication failed: credential expired")
            raise TokenExpiredError() from e
        except JWTError as e:
            logger.warning(f"Authentication failed: invalid JWT - {e}")
            raise InvalidTokenError() from e

        if not verify_token_type(token_data, TOKEN_TYPE_ACCESS):
            logger.warning("Authentication failed: wrong token type")
            raise InvalidTokenError("Token is not an access token")

        user_id = token_data.get("sub")
        if not user_id:
            raise InvalidTokenError()

        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            logger.warning(f"Authentication failed: user {user_id} not found")
            raise InvalidTokenError("User not found")

        return user
