"""
Inbound message envelope and per-action payload registry.

Every text frame received on the WebSocket is parsed into an InboundMessage,
then its ``data`` is validated against the payload model registered for the
action. Unknown actions and malformed payloads are rejected with
InvalidMessageError before any service is called.
"""

import json
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from orgsync.exceptions import InvalidMessageError
from orgsync.schemas.account import AccountCreate, AccountDelete, AccountEdit, AssignUsers
from orgsync.schemas.auth import LoginRequest
from orgsync.schemas.common import CamelModel
from orgsync.schemas.user import UserCreate


class EmptyPayload(CamelModel):
    """Payload of actions that take no data."""


class InboundMessage(BaseModel):
    """
    Inbound message envelope.

    Attributes:
        credential: Access credential issued by auth.login (``token`` is
            accepted as an alias)
        action: Dotted action name, e.g. "accounts.create"
        data: Action-specific payload
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    credential: str | None = Field(
        default=None,
        validation_alias=AliasChoices("credential", "token"),
    )
    action: str = Field(min_length=1, max_length=100)
    data: dict[str, Any] | None = None


# Action name -> payload model
ACTION_PAYLOADS: dict[str, type[BaseModel]] = {
    "auth.login": LoginRequest,
    "auth.logout": EmptyPayload,
    "accounts.create": AccountCreate,
    "accounts.edit": AccountEdit,
    "accounts.delete": AccountDelete,
    "accounts.assignUsers": AssignUsers,
    "accounts.get": EmptyPayload,
    "users.create": UserCreate,
    "accounts.getOrganizationUsers": EmptyPayload,
}

# Actions that can be sent without a credential
PUBLIC_ACTIONS = frozenset({"auth.login", "auth.logout"})


def _describe(exc: ValidationError) -> str:
    """Summarize validation errors as "field: reason; ..." without input values."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "message"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


def parse_message(raw: str | bytes) -> InboundMessage:
    """
    Parse a raw text frame into an InboundMessage.

    Args:
        raw: Frame content

    Returns:
        Validated envelope

    Raises:
        InvalidMessageError: If the frame is not a JSON object with a
            non-empty ``action`` string
    """
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise InvalidMessageError("Message is not valid JSON") from e

    if not isinstance(payload, dict):
        raise InvalidMessageError("Message must be a JSON object")

    try:
        return InboundMessage.model_validate(payload)
    except ValidationError as e:
        raise InvalidMessageError(f"Invalid message: {_describe(e)}") from e


def parse_payload(action: str, data: dict[str, Any] | None) -> BaseModel:
    """
    Validate the payload of an action.

    Args:
        action: Action name from the envelope
        data: Raw payload (None is treated as an empty object)

    Returns:
        Instance of the payload model registered for the action

    Raises:
        InvalidMessageError: If the action is unknown or the payload does not
            match the action's model
    """
    model = ACTION_PAYLOADS.get(action)
    if model is None:
        raise InvalidMessageError(f"Unknown action: {action}")

    try:
        return model.model_validate(data or {})
    except ValidationError as e:
        raise InvalidMessageError(f"Invalid data for {action}: {_describe(e)}") from e
