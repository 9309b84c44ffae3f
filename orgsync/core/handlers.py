"""
Exception handlers for the HTTP routes.

Every HTTP error body has the same shape::

    {"error": {"code": ..., "message": ..., "details": ...},
     "meta": {"request_id": ...}}

WebSocket messages never reach these handlers: the dispatcher turns errors
into message envelopes itself.
"""

import logging
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from orgsync.core.config import settings
from orgsync.exceptions import AppException

logger = logging.getLogger(__name__)


def _error_response(
    request: Request, status_code: int, code: str, message: str, details: Any
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {"code": code, "message": message, "details": details},
            "meta": {"request_id": getattr(request.state, "request_id", None)},
        },
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    logger.warning(f"{request.url.path}: {exc.error_code} - {exc.message}")
    return _error_response(request, exc.status_code, exc.error_code, exc.message, exc.details)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Flatten pydantic errors into ``{field, message, type}`` items."""
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning(f"{request.url.path}: validation failed - {errors}")
    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "VALIDATION_ERROR",
        "Request validation failed",
        errors,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the traceback; only debug mode returns the exception text."""
    logger.error(f"{request.url.path}: unhandled {type(exc).__name__}", exc_info=exc)
    message = str(exc) if settings.debug else "An unexpected error occurred"
    return _error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", message, {}
    )
