"""
Unit tests for UserService.

All tests are fully mocked - no database or external dependencies.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from orgsync.core.security import verify_password
from orgsync.exceptions import AlreadyExistsError, InsufficientPermissionsError, NotFoundError
from orgsync.models.account import Account
from orgsync.models.enums import AccountType, AdminType, UserRole
from orgsync.models.user import User
from orgsync.schemas.user import UserCreate
from orgsync.services.user_service import UserService


@pytest.fixture
def main_account():
    return Account(id="main", name="Main", type=AccountType.main, country="Ghana")


@pytest.fixture
def actor(main_account):
    return User(
        id="super",
        first_name="Ama",
        last_name="Mensah",
        email="ama@example.com",
        phone="",
        role=UserRole.admin,
        admin_type=AdminType.unlimited,
        account_id=main_account.id,
        account=main_account,
    )


@pytest.fixture
def mock_session():
    """Create a mock AsyncSession."""
    return AsyncMock()


@pytest.fixture
def mock_user_repo():
    """Create a mock UserRepository."""
    repo = AsyncMock()
    repo.email_exists.return_value = False
    repo.add.side_effect = lambda user: user
    return repo


@pytest.fixture
def mock_account_repo(main_account):
    """Create a mock AccountRepository."""
    repo = AsyncMock()
    repo.get_by_id.return_value = main_account
    return repo


@pytest.fixture
def mock_permission_service():
    return MagicMock()


@pytest.fixture
def user_service(mock_session, mock_user_repo, mock_account_repo, mock_permission_service):
    """Create UserService with mocked dependencies."""
    with patch("orgsync.services.user_service.UserRepository", return_value=mock_user_repo), \
         patch("orgsync.services.user_service.AccountRepository", return_value=mock_account_repo), \
         patch("orgsync.services.user_service.PermissionService", return_value=mock_permission_service):
        service = UserService(mock_session)
    return service


def payload(**overrides) -> UserCreate:
    data = {
        "first_name": "Kofi",
        "last_name": "Boateng",
        "email": "kofi@example.com",
        "phone": "0244000000",
        "role": "user",
        "account_id": "main",
    }
    data.update(overrides)
    return UserCreate(**data)


class TestCreateUser:
    """Test the create_user method."""

    @pytest.mark.asyncio
    async def test_create_plain_user(self, user_service, mock_session, actor):
        user = await user_service.create_user(actor, payload())

        assert user.role == UserRole.user
        assert user.admin_type is None
        assert user.password_hash is None
        assert user.account_id == "main"
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_admin_defaults_to_limited(self, user_service, actor):
        user = await user_service.create_user(actor, payload(role="admin"))

        assert user.admin_type == AdminType.limited

    @pytest.mark.asyncio
    async def test_admin_type_ignored_for_plain_user(self, user_service, actor):
        user = await user_service.create_user(actor, payload(admin_type="unlimited"))

        assert user.admin_type is None

    @pytest.mark.asyncio
    async def test_admin_password_is_hashed(self, user_service, actor):
        user = await user_service.create_user(
            actor, payload(role="admin", admin_type="unlimited", password="Strong123")
        )

        assert user.admin_type == AdminType.unlimited
        assert user.password_hash != "Strong123"
        assert verify_password("Strong123", user.password_hash)

    @pytest.mark.asyncio
    async def test_names_are_sanitized(self, user_service, actor):
        user = await user_service.create_user(
            actor, payload(first_name="<b>Kofi</b>", last_name="Boateng<script>x</script>")
        )

        assert user.first_name == "Kofi"
        assert user.last_name == "Boateng"

    @pytest.mark.asyncio
    async def test_requires_main_unlimited_admin(
        self, user_service, mock_permission_service, mock_user_repo, actor
    ):
        mock_permission_service.require_main_unlimited_admin.side_effect = (
            InsufficientPermissionsError()
        )

        with pytest.raises(InsufficientPermissionsError):
            await user_service.create_user(actor, payload())

        mock_user_repo.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_account(self, user_service, mock_account_repo, mock_user_repo, actor):
        mock_account_repo.get_by_id.return_value = None

        with pytest.raises(NotFoundError, match="Account not found"):
            await user_service.create_user(actor, payload(account_id="ghost"))

        mock_user_repo.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_duplicate_email(self, user_service, mock_user_repo, mock_session, actor):
        mock_user_repo.email_exists.return_value = True

        with pytest.raises(AlreadyExistsError):
            await user_service.create_user(actor, payload())

        mock_user_repo.add.assert_not_called()
        mock_session.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_maps_to_already_exists(
        self, user_service, mock_user_repo, mock_session, actor
    ):
        mock_user_repo.add.side_effect = IntegrityError("INSERT", {}, Exception("unique"))

        with pytest.raises(AlreadyExistsError):
            await user_service.create_user(actor, payload())

        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_called()
