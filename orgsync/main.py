"""
FastAPI application.

The HTTP surface is small (service info and health checks); clients talk to
the service over the ``/ws`` WebSocket, one JSON envelope per frame.

Run with:
    uvicorn orgsync.main:app --host 0.0.0.0 --port 3000
or:
    python -m orgsync.main
"""

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from orgsync.api.routes import health, root, ws
from orgsync.core.config import settings
from orgsync.core.handlers import (
    app_exception_handler,
    general_exception_handler,
    validation_exception_handler,
)
from orgsync.core.lifespan import lifespan
from orgsync.core.logging import setup_logging
from orgsync.exceptions import AppException
from orgsync.middleware import (
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Account hierarchy service with legacy directory reconciliation",
    docs_url="/docs" if settings.debug else None,
    redoc_url=None,
    lifespan=lifespan,
)

app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

# Starlette wraps in reverse order: the last middleware added runs first.
# HTTP only; WebSocket origins are checked by the connection loop.
app.add_middleware(SecurityHeadersMiddleware, enable_hsts=settings.is_production)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(root.router)
app.include_router(health.router)
app.include_router(ws.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("orgsync.main:app", host=settings.host, port=settings.port, reload=settings.reload)
