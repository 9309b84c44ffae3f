"""
Unit tests for LegacyApiClient.

The legacy API is simulated with httpx.MockTransport.
"""

import httpx
import pytest

from orgsync.exceptions import ExternalServiceError
from orgsync.services.legacy_client import LegacyApiClient


def make_client(handler, page_size=2) -> LegacyApiClient:
    return LegacyApiClient(
        base_url="https://legacy.example.com",
        email="sync@example.com",
        password="secret",
        page_size=page_size,
        transport=httpx.MockTransport(handler),
    )


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_stores_token_and_authorizes_later_requests(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.path == "/login":
                return httpx.Response(200, json={"token": "tok-123"})
            return httpx.Response(200, json=[])

        async with make_client(handler) as client:
            assert await client.login() == "tok-123"
            await client.fetch_schedules()

        assert seen[0].method == "POST"
        assert "authorization" not in seen[0].headers
        assert seen[1].headers["authorization"] == "Bearer tok-123"

    @pytest.mark.asyncio
    async def test_login_rejected(self):
        async with make_client(lambda request: httpx.Response(401)) as client:
            with pytest.raises(ExternalServiceError, match="status 401"):
                await client.login()

    @pytest.mark.asyncio
    async def test_login_without_token(self):
        async with make_client(lambda request: httpx.Response(200, json={})) as client:
            with pytest.raises(ExternalServiceError, match="no token"):
                await client.login()

    @pytest.mark.asyncio
    async def test_login_without_configured_credentials(self):
        client = LegacyApiClient(
            base_url="https://legacy.example.com",
            email="",
            password="",
            transport=httpx.MockTransport(lambda request: httpx.Response(200)),
        )
        async with client:
            with pytest.raises(ExternalServiceError, match="not configured"):
                await client.login()

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(ExternalServiceError, match="unreachable"):
                await client.login()

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        async with make_client(handler) as client:
            with pytest.raises(ExternalServiceError, match="timed out"):
                await client.login()

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        async with make_client(lambda request: httpx.Response(200, text="<html>")) as client:
            with pytest.raises(ExternalServiceError, match="invalid JSON"):
                await client.login()


class TestFetchAdmins:
    @pytest.mark.asyncio
    async def test_paginates_until_short_page_and_drops_admins_without_phone(self):
        pages = {
            "1": [
                {"id": 1, "firstname": "Ama", "surname": "Owusu", "email": "ama@x.org", "phone": "0201"},
                {"id": 2, "firstname": "Kojo", "surname": "Asante", "email": "kojo@x.org", "phone": ""},
            ],
            "2": [
                {"id": 3, "firstname": "Esi", "surname": "Appiah", "email": None, "phone": 233555},
            ],
        }
        requested = []

        def handler(request):
            page = request.url.params["page"]
            requested.append((page, request.url.params["pageSize"]))
            return httpx.Response(200, json=pages.get(page, []))

        async with make_client(handler) as client:
            admins = await client.fetch_admins()

        assert requested == [("1", "2"), ("2", "2")]
        assert [admin.id for admin in admins] == ["1", "3"]
        assert admins[1].phone == "233555"
        assert admins[1].email is None

    @pytest.mark.asyncio
    async def test_wrapped_collection_and_malformed_records(self):
        def handler(request):
            return httpx.Response(200, json={"data": [{"id": 7, "phone": "0207"}, {"firstname": "no id"}]})

        async with make_client(handler, page_size=10) as client:
            admins = await client.fetch_admins()

        assert [admin.id for admin in admins] == ["7"]

    @pytest.mark.asyncio
    async def test_page_failure_raises(self):
        async with make_client(lambda request: httpx.Response(503)) as client:
            with pytest.raises(ExternalServiceError):
                await client.fetch_admins()


class TestAttendance:
    @pytest.mark.asyncio
    async def test_fetch_attendance_sends_schedule_and_date_range(self):
        captured = {}

        def handler(request):
            captured.update(request.url.params)
            return httpx.Response(
                200,
                json={
                    "results": [
                        {"memberId": 11, "firstname": "Yaw", "phone": "0241"},
                        {"memberId": None, "firstname": "Nobody", "phone": "0242"},
                    ]
                },
            )

        async with make_client(handler) as client:
            records = await client.fetch_attendance("42")

        assert captured["scheduleId"] == "42"
        assert "start_date" in captured and "end_date" in captured
        assert [record.member_id for record in records] == ["11"]

    @pytest.mark.asyncio
    async def test_unexpected_shape(self):
        async with make_client(lambda request: httpx.Response(200, json="nope")) as client:
            with pytest.raises(ExternalServiceError, match="Unexpected response shape"):
                await client.fetch_schedules()


def test_client_requires_context_manager():
    with pytest.raises(RuntimeError):
        LegacyApiClient(base_url="https://legacy.example.com").client
