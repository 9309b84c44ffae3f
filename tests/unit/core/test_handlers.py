"""
Unit tests for the HTTP error handlers and the origin settings.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
from fastapi import Request
from fastapi.exceptions import RequestValidationError

from orgsync.core.config import Settings, settings
from orgsync.core.handlers import (
    app_exception_handler,
    general_exception_handler,
    validation_exception_handler,
)
from orgsync.exceptions import AppException, ConflictError, NotFoundError


def make_request(request_id: str | None = "req-42") -> MagicMock:
    request = MagicMock(spec=Request)
    request.url.path = "/health/ready"
    if request_id is None:
        request.state = MagicMock(spec=[])
    else:
        request.state.request_id = request_id
    return request


def body_of(response) -> dict:
    return json.loads(response.body)


class TestAppExceptionHandler:
    @pytest.mark.asyncio
    async def test_uses_exception_status_and_code(self):
        response = await app_exception_handler(make_request(), NotFoundError("Account"))

        assert response.status_code == 404
        assert body_of(response) == {
            "error": {"code": "NOT_FOUND", "message": "Account not found", "details": {}},
            "meta": {"request_id": "req-42"},
        }

    @pytest.mark.asyncio
    async def test_conflict(self):
        response = await app_exception_handler(make_request(), ConflictError("Moved concurrently"))

        assert response.status_code == 409
        assert body_of(response)["error"]["code"] == "CONFLICT"

    @pytest.mark.asyncio
    async def test_request_without_id(self):
        exc = AppException("Boom", status_code=503, error_code="BOOM")

        response = await app_exception_handler(make_request(None), exc)

        assert response.status_code == 503
        assert body_of(response)["meta"]["request_id"] is None


class TestValidationExceptionHandler:
    @pytest.mark.asyncio
    async def test_flattens_locations(self):
        exc = RequestValidationError(
            [{"loc": ("header", "x-request-id"), "msg": "too long", "type": "string_too_long"}]
        )

        response = await validation_exception_handler(make_request(), exc)

        assert response.status_code == 422
        error = body_of(response)["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"] == [
            {"field": "header.x-request-id", "message": "too long", "type": "string_too_long"}
        ]


class TestGeneralExceptionHandler:
    @pytest.mark.asyncio
    async def test_generic_message_outside_debug(self):
        with patch.object(settings, "debug", False):
            response = await general_exception_handler(
                make_request(), ValueError("password authentication failed for user orgsync")
            )

        assert response.status_code == 500
        assert body_of(response)["error"]["message"] == "An unexpected error occurred"

    @pytest.mark.asyncio
    async def test_exception_text_in_debug(self):
        with patch.object(settings, "debug", True):
            response = await general_exception_handler(make_request(), ValueError("boom"))

        assert body_of(response)["error"]["message"] == "boom"


class TestOrigins:
    def test_comma_separated_value_is_split(self):
        parsed = Settings(
            secret_key="x" * 32,
            database_url="postgresql+asyncpg://u:p@localhost/db",
            cors_origins=" https://a.example.com/ , ,https://b.example.com",
        )

        assert parsed.cors_origins == ["https://a.example.com", "https://b.example.com"]

    def test_missing_origin_is_allowed(self):
        assert settings.is_origin_allowed(None) is True

    def test_listed_origin_with_trailing_slash(self):
        with patch.object(settings, "cors_origins", ["https://app.example.com"]):
            assert settings.is_origin_allowed("https://app.example.com/") is True

    def test_unlisted_origin_is_rejected(self):
        with patch.object(settings, "cors_origins", ["https://app.example.com"]):
            assert settings.is_origin_allowed("https://evil.example.com") is False

    def test_wildcard(self):
        with patch.object(settings, "cors_origins", ["*"]):
            assert settings.is_origin_allowed("https://anything.example.com") is True
