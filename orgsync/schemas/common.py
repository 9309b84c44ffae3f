"""
Common Pydantic schemas shared by the message handlers.

This module provides:
- CamelModel: base model for wire payloads (camelCase on the wire,
  snake_case in Python)
- ApiResponse: the outbound success envelope
- ErrorResponse: the outbound error envelope
- EventMessage: server push notification
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base model for inbound payloads.

    Accepts both camelCase (wire) and snake_case (Python) field names and
    rejects unknown fields so that malformed payloads never reach a service.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


class CamelResponse(BaseModel):
    """
    Base model for outbound data built from ORM instances.

    Serialize with ``model_dump(mode="json", by_alias=True)``.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(BaseModel):
    """
    Success envelope sent back for every handled message.

    Attributes:
        status: Status code (200 for success)
        message: Human-readable description
        data: Optional payload
    """

    status: int = Field(default=200, description="Status code")
    message: str = Field(description="Human-readable message")
    data: Any | None = Field(default=None, description="Response payload")

    def to_wire(self) -> dict[str, Any]:
        """Dump the envelope, omitting ``data`` when there is none."""
        return self.model_dump(mode="json", exclude_none=True)


class ErrorResponse(BaseModel):
    """
    Error envelope.

    Carries no details: stack traces and store errors stay in the logs.
    """

    status: int
    message: str


class EventMessage(BaseModel):
    """Server push notification broadcast to subscribed connections."""

    event: str
    data: dict[str, Any] = Field(default_factory=dict)
