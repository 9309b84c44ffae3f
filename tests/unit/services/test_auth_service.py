"""
Unit tests for AuthService.

All tests are fully mocked - no database or external dependencies.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from orgsync.core.security import create_access_token, decode_token, hash_password
from orgsync.exceptions import InvalidCredentialsError, InvalidTokenError, TokenExpiredError
from orgsync.models.account import Account
from orgsync.models.enums import AccountType, AdminType, UserRole
from orgsync.models.user import User
from orgsync.schemas.auth import LoginRequest
from orgsync.services.auth_service import AuthService

PASSWORD = "AdminPass123"


@pytest.fixture
def admin():
    account = Account(id="main", name="Main", type=AccountType.main, country="Ghana")
    return User(
        id="admin-1",
        first_name="Ama",
        last_name="Mensah",
        email="ama@example.com",
        phone="",
        role=UserRole.admin,
        admin_type=AdminType.unlimited,
        account_id="main",
        account=account,
        password_hash=hash_password(PASSWORD),
    )


@pytest.fixture
def mock_user_repo():
    return AsyncMock()


@pytest.fixture
def auth_service(mock_user_repo):
    with patch("orgsync.services.auth_service.UserRepository", return_value=mock_user_repo):
        service = AuthService(AsyncMock())
    return service


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_issues_credential_with_identity_claims(
        self, auth_service, mock_user_repo, admin
    ):
        mock_user_repo.get_by_email.return_value = admin

        issued = await auth_service.login(LoginRequest(email="ama@example.com", password=PASSWORD))

        claims = decode_token(issued.token)
        assert claims["sub"] == "admin-1"
        assert claims["id"] == "admin-1"
        assert claims["email"] == "ama@example.com"
        assert claims["role"] == "admin"
        assert claims["adminType"] == "unlimited"
        assert claims["accountId"] == "main"
        assert issued.expires_in > 0
        assert issued.user is admin

    @pytest.mark.asyncio
    async def test_unknown_email(self, auth_service, mock_user_repo):
        mock_user_repo.get_by_email.return_value = None

        with pytest.raises(InvalidCredentialsError):
            await auth_service.login(LoginRequest(email="nobody@example.com", password=PASSWORD))

    @pytest.mark.asyncio
    async def test_wrong_password(self, auth_service, mock_user_repo, admin):
        mock_user_repo.get_by_email.return_value = admin

        with pytest.raises(InvalidCredentialsError):
            await auth_service.login(LoginRequest(email="ama@example.com", password="Wrong123"))

    @pytest.mark.asyncio
    async def test_synchronized_user_without_hash_cannot_log_in(
        self, auth_service, mock_user_repo, admin
    ):
        admin.password_hash = None
        mock_user_repo.get_by_email.return_value = admin

        with pytest.raises(InvalidCredentialsError):
            await auth_service.login(LoginRequest(email="ama@example.com", password=PASSWORD))

    @pytest.mark.asyncio
    async def test_plain_user_cannot_log_in(self, auth_service, mock_user_repo, admin):
        admin.role = UserRole.user
        admin.admin_type = None
        mock_user_repo.get_by_email.return_value = admin

        with pytest.raises(InvalidCredentialsError):
            await auth_service.login(LoginRequest(email="ama@example.com", password=PASSWORD))


class TestAuthenticate:
    @pytest.mark.asyncio
    async def test_valid_credential(self, auth_service, mock_user_repo, admin):
        mock_user_repo.get_by_id.return_value = admin

        user = await auth_service.authenticate(create_access_token({"sub": "admin-1"}))

        assert user is admin
        mock_user_repo.get_by_id.assert_awaited_once_with("admin-1")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("credential", [None, ""])
    async def test_missing_credential(self, auth_service, credential):
        with pytest.raises(InvalidTokenError, match="Authentication required"):
            await auth_service.authenticate(credential)

    @pytest.mark.asyncio
    async def test_garbage_credential(self, auth_service):
        with pytest.raises(InvalidTokenError):
            await auth_service.authenticate("not-a-jwt")

    @pytest.mark.asyncio
    async def test_expired_credential(self, auth_service):
        token = create_access_token({"sub": "admin-1"}, timedelta(seconds=-5))

        with pytest.raises(TokenExpiredError):
            await auth_service.authenticate(token)

    @pytest.mark.asyncio
    async def test_credential_without_subject(self, auth_service):
        with pytest.raises(InvalidTokenError):
            await auth_service.authenticate(create_access_token({"role": "admin"}))

    @pytest.mark.asyncio
    async def test_deleted_user(self, auth_service, mock_user_repo):
        mock_user_repo.get_by_id.return_value = None

        with pytest.raises(InvalidTokenError, match="User not found"):
            await auth_service.authenticate(create_access_token({"sub": "admin-1"}))
