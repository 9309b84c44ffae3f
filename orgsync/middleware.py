"""
HTTP middleware.

Only the info and health routes are served over plain HTTP. Starlette's
BaseHTTPMiddleware does not run for WebSocket scopes, so connections on
``/ws`` get their correlation id from the connection loop instead.
"""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from orgsync.core.logging import correlation_id_var

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    # JSON only: nothing may be loaded or framed
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Tag each request with an id.

    The caller's X-Request-ID is reused when present. The id is exposed as
    request.state.request_id, used as the log correlation id while the
    request runs and echoed back in the response header.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id

        token = correlation_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            correlation_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, enable_hsts: bool = False):
        super().__init__(app)
        self.enable_hsts = enable_hsts

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        if self.enable_hsts:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One log line per request; the level follows the status class."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        client = request.client.host if request.client else "unknown"
        line = f"{request.method} {request.url.path} client={client}"

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"{line} failed after {time.perf_counter() - started:.3f}s")
            raise

        elapsed = time.perf_counter() - started
        status = response.status_code
        level = logging.INFO if status < 400 else logging.WARNING if status < 500 else logging.ERROR
        logger.log(level, f"{line} -> {status} in {elapsed:.3f}s")

        response.headers["X-Response-Time"] = f"{elapsed:.3f}s"
        return response
