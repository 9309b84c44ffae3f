"""
Application exceptions.

Services raise these; the WebSocket dispatcher turns them into
``{"status", "message"}`` envelopes and the HTTP handlers into JSON error
bodies. Each class fixes a status code and a machine-readable error code:

    AppException
    ├── AuthenticationError (401)        connection is closed with 4401
    │   ├── InvalidCredentialsError
    │   ├── InvalidTokenError
    │   └── TokenExpiredError
    ├── AuthorizationError (403)
    │   └── InsufficientPermissionsError
    ├── BadRequestError (400)
    │   └── InvalidMessageError
    ├── ResourceError
    │   ├── NotFoundError (404)
    │   └── AlreadyExistsError (409)
    ├── ConflictError (409)
    └── InternalError (500)
        ├── ExternalServiceError
        └── ReconciliationError

Messages of 5xx errors are generic: they reach clients verbatim, so they
never carry database or legacy API text. Put such context in the log.
"""

from typing import Any


class AppException(Exception):
    """
    Base class of every error reported to clients.

    Attributes:
        status_code: Status carried in the envelope (HTTP status for routes)
        error_code: Machine-readable code, used in HTTP error bodies and logs
        message: Text shown to the client
        details: Extra structured context for HTTP error bodies
    """

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        status_code: int | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Error body for HTTP responses."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            }
        }

    def to_envelope(self) -> dict[str, Any]:
        """Error envelope for WebSocket replies."""
        return {"status": self.status_code, "message": self.message}


# Authentication (401)


class AuthenticationError(AppException):
    status_code = 401
    error_code = "AUTHENTICATION_FAILED"
    default_message = "Authentication failed"


class InvalidCredentialsError(AuthenticationError):
    """Wrong email or password, or the account may not log in."""

    error_code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password"


class InvalidTokenError(AuthenticationError):
    """Credential missing, malformed, wrongly signed or of the wrong type."""

    error_code = "INVALID_TOKEN"
    default_message = "Invalid or malformed token"


class TokenExpiredError(AuthenticationError):
    error_code = "TOKEN_EXPIRED"
    default_message = "Token has expired"


# Authorization (403)


class AuthorizationError(AppException):
    status_code = 403
    error_code = "AUTHORIZATION_FAILED"
    default_message = "Access forbidden"


class InsufficientPermissionsError(AuthorizationError):
    """The actor may not operate on the target account."""

    error_code = "INSUFFICIENT_PERMISSIONS"
    default_message = "Insufficient permissions to perform this action"


# Bad request (400)


class BadRequestError(AppException):
    status_code = 400
    error_code = "BAD_REQUEST"
    default_message = "Bad request"


class InvalidMessageError(BadRequestError):
    """Inbound frame is not JSON, names an unknown action or has a bad payload."""

    error_code = "INVALID_MESSAGE"
    default_message = "Invalid message"


# Resources (404, 409)


class ResourceError(AppException):
    """Base class for errors about a named resource."""

    def __init__(
        self,
        resource: str = "Resource",
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.resource = resource
        super().__init__(message or self.default_message.format(resource=resource), details=details)


class NotFoundError(ResourceError):
    status_code = 404
    error_code = "NOT_FOUND"
    default_message = "{resource} not found"


class AlreadyExistsError(ResourceError):
    status_code = 409
    error_code = "ALREADY_EXISTS"
    default_message = "{resource} already exists"


class ConflictError(AppException):
    """The store changed under the operation (e.g. a concurrent reassignment)."""

    status_code = 409
    error_code = "CONFLICT"
    default_message = "Resource conflict"


# Internal (500)


class InternalError(AppException):
    pass


class ExternalServiceError(InternalError):
    """The legacy API failed, timed out or answered with an unexpected body."""

    error_code = "EXTERNAL_SERVICE_ERROR"
    default_message = "External service request failed"


class ReconciliationError(InternalError):
    """A reconciliation run was aborted before writing anything."""

    error_code = "RECONCILIATION_FAILED"
    default_message = "Organization synchronization failed"
