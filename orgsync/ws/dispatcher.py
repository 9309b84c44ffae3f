"""
Action dispatcher for inbound WebSocket messages.

For every message the dispatcher:
    1. Parses the envelope and validates the action's payload
    2. Opens a database session for this message only
    3. Authenticates the credential (all actions except auth.login and
       auth.logout)
    4. Calls the service operation registered for the action
    5. Builds the success envelope, or maps the error to the error envelope

Errors never escape: AppException subclasses keep their status and
message, anything else becomes a generic Internal envelope. Authentication
errors ask the connection to close.
"""

import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orgsync.core.logging import correlation_id_var
from orgsync.exceptions import AppException, AuthenticationError, InternalError
from orgsync.models.user import User
from orgsync.schemas.account import (
    AccountCreateResult,
    AccountDeleteResult,
    AccountListItem,
    AccountResponse,
    AssignUsersResult,
)
from orgsync.schemas.auth import LoginResponse
from orgsync.schemas.common import ApiResponse, EventMessage
from orgsync.schemas.legacy import OrganizationUsersResult
from orgsync.schemas.messages import PUBLIC_ACTIONS, parse_message, parse_payload
from orgsync.schemas.user import OrganizationUser, UserResponse
from orgsync.services.account_service import AccountService
from orgsync.services.auth_service import AuthService
from orgsync.services.legacy_client import LegacyApiClient
from orgsync.services.reconciliation_service import ReconciliationService
from orgsync.services.user_service import UserService

logger = logging.getLogger(__name__)

CLOSE_NORMAL = 1000
CLOSE_UNAUTHORIZED = 4401


@dataclass
class HandlerResult:
    """What a handler produced for one message."""

    message: str
    data: Any = None
    status: int = 200
    event: EventMessage | None = None
    close_code: int | None = None
    user_id: str | None = None


@dataclass
class DispatchResult:
    """
    Outcome of one dispatched message.

    Attributes:
        response: Envelope to send back
        close_code: Close the connection with this code after replying
        user_id: Authenticated user, when the message carried valid identity
        event: Notification to broadcast to the "accounts" topic
    """

    response: dict[str, Any]
    close_code: int | None = None
    user_id: str | None = None
    event: dict[str, Any] | None = None


Handler = Callable[[AsyncSession, User | None, Any], Awaitable[HandlerResult]]


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


class MessageDispatcher:
    """
    Routes inbound messages to services.

    Args:
        sessionmaker: Factory for the per-message database session
        client_factory: Factory for the legacy API client
    """

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        client_factory: Callable[[], LegacyApiClient] = LegacyApiClient,
    ):
        self.sessionmaker = sessionmaker
        self.client_factory = client_factory
        self._handlers: dict[str, Handler] = {
            "auth.login": self._login,
            "auth.logout": self._logout,
            "accounts.create": self._create_account,
            "accounts.edit": self._edit_account,
            "accounts.delete": self._delete_account,
            "accounts.assignUsers": self._assign_users,
            "accounts.get": self._list_accounts,
            "users.create": self._create_user,
            "accounts.getOrganizationUsers": self._organization_users,
        }

    async def dispatch(self, raw: str | bytes, connection_id: str) -> DispatchResult:
        """
        Handle one inbound frame.

        Args:
            raw: Frame content
            connection_id: Connection the frame arrived on (for logging)

        Returns:
            DispatchResult with the envelope to send back
        """
        message_id = uuid.uuid4().hex[:12]
        token = correlation_id_var.set(f"{connection_id}/{message_id}")
        action: str | None = None
        actor_id: str | None = None
        target_id: str | None = None

        try:
            message = parse_message(raw)
            action = message.action
            payload = parse_payload(action, message.data)
            target_id = getattr(payload, "account_id", None)

            async with self.sessionmaker() as session:
                try:
                    actor = None
                    if action not in PUBLIC_ACTIONS:
                        actor = await AuthService(session).authenticate(message.credential)
                        actor_id = actor.id
                    result = await self._handlers[action](session, actor, payload)
                except Exception:
                    await session.rollback()
                    raise

            logger.info(
                f"Handled {action} for user {actor_id or result.user_id} "
                f"(target {target_id}): {result.status}"
            )
            envelope = ApiResponse(status=result.status, message=result.message, data=result.data)
            return DispatchResult(
                response=envelope.to_wire(),
                close_code=result.close_code,
                user_id=actor_id or result.user_id,
                event=result.event.model_dump(mode="json") if result.event else None,
            )

        except AppException as e:
            log = logger.error if e.status_code >= 500 else logger.warning
            log(
                f"{action or 'message'} failed for user {actor_id} (target {target_id}): "
                f"{e.status_code} {e.error_code} - {e.message}"
            )
            close_code = CLOSE_UNAUTHORIZED if isinstance(e, AuthenticationError) else None
            return DispatchResult(response=e.to_envelope(), close_code=close_code)

        except Exception:
            logger.exception(
                f"Unhandled error in {action or 'message'} for user {actor_id} (target {target_id})"
            )
            return DispatchResult(response=InternalError().to_envelope())

        finally:
            correlation_id_var.reset(token)

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    async def _login(self, session, actor, payload) -> HandlerResult:
        issued = await AuthService(session).login(payload)
        data = LoginResponse(
            token=issued.token,
            expires_in=issued.expires_in,
            user=UserResponse.model_validate(issued.user),
        )
        return HandlerResult(message="Login successful", data=_dump(data), user_id=issued.user.id)

    async def _logout(self, session, actor, payload) -> HandlerResult:
        return HandlerResult(message="Logout successful", close_code=CLOSE_NORMAL)

    async def _create_account(self, session, actor, payload) -> HandlerResult:
        creation = await AccountService(session).create_account(actor, payload)
        return HandlerResult(
            message="Account created successfully",
            status=201,
            data=_dump(AccountCreateResult.model_validate(creation)),
            event=EventMessage(
                event="account.created",
                data={"accountId": creation.account.id, "parentId": creation.account.parent_id},
            ),
        )

    async def _edit_account(self, session, actor, payload) -> HandlerResult:
        account = await AccountService(session).edit_account(actor, payload)
        return HandlerResult(
            message="Account updated successfully",
            data=_dump(AccountResponse.model_validate(account)),
            event=EventMessage(event="account.updated", data={"accountId": account.id}),
        )

    async def _delete_account(self, session, actor, payload) -> HandlerResult:
        deletion = await AccountService(session).delete_account(actor, payload)
        return HandlerResult(
            message="Account deleted successfully",
            data=_dump(AccountDeleteResult.model_validate(deletion)),
            event=EventMessage(
                event="account.deleted",
                data={"accountId": deletion.account_id, "reassignedTo": deletion.reassigned_to},
            ),
        )

    async def _assign_users(self, session, actor, payload) -> HandlerResult:
        assignment = await AccountService(session).assign_users(actor, payload)
        return HandlerResult(
            message="Users assigned successfully",
            data=_dump(AssignUsersResult.model_validate(assignment)),
            event=EventMessage(
                event="account.usersAssigned",
                data={
                    "accountId": assignment.account_id,
                    "userIds": [user.id for user in assignment.users],
                },
            ),
        )

    async def _list_accounts(self, session, actor, payload) -> HandlerResult:
        items = await AccountService(session).list_accounts(actor)
        data = []
        for item in items:
            fields = AccountResponse.model_validate(item.account).model_dump()
            data.append(_dump(AccountListItem(**fields, user_count=item.user_count)))
        return HandlerResult(message="Accounts retrieved successfully", data=data)

    async def _create_user(self, session, actor, payload) -> HandlerResult:
        user = await UserService(session).create_user(actor, payload)
        return HandlerResult(
            message="User created successfully",
            status=201,
            data=_dump(UserResponse.model_validate(user)),
        )

    async def _organization_users(self, session, actor, payload) -> HandlerResult:
        service = ReconciliationService(session, client_factory=self.client_factory)
        sync = await service.sync_organization(actor)
        data = OrganizationUsersResult(
            main_account_id=sync.main_account.id,
            main_account_type=sync.main_account.type,
            summary=sync.summary,
            users=[OrganizationUser.from_user(user) for user in sync.users],
        )
        return HandlerResult(message="Organization users retrieved successfully", data=_dump(data))
