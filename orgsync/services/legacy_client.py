"""
HTTP client for the legacy system of record.

Consumed endpoints:
    POST /login                                   credential exchange
    GET  /users?page=N&pageSize=S                 paginated admin directory
    GET  /schedules                               schedules
    GET  /attendance?scheduleId=..&start_date=..&end_date=..
                                                  attendance of one schedule

Every request after login carries ``Authorization: <scheme> <token>``.
Transport failures, timeouts and non-2xx answers raise ExternalServiceError.

Usage:
    async with LegacyApiClient() as client:
        await client.login()
        admins = await client.fetch_admins()
"""

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from orgsync.core.config import settings
from orgsync.exceptions import ExternalServiceError
from orgsync.schemas.legacy import LegacyAdmin, LegacyAttendance, LegacySchedule

logger = logging.getLogger(__name__)

# Stop paginating after this many pages even if the last page was full
MAX_ADMIN_PAGES = 1000


class LegacyApiClient:
    """
    Async client for the legacy REST API.

    Args:
        base_url: API root (default: settings.legacy_api_base_url)
        email: Login email (default: settings.legacy_api_email)
        password: Login password (default: settings.legacy_api_password)
        token_scheme: Authorization scheme (default: settings.legacy_api_token_scheme)
        timeout: Per-request timeout in seconds
        page_size: Admin directory page size
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        base_url: str | None = None,
        email: str | None = None,
        password: str | None = None,
        token_scheme: str | None = None,
        timeout: float | None = None,
        page_size: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.legacy_api_base_url).rstrip("/")
        self.email = email if email is not None else settings.legacy_api_email
        self.password = password if password is not None else settings.legacy_api_password
        self.token_scheme = token_scheme or settings.legacy_api_token_scheme
        self.timeout = timeout or settings.legacy_api_timeout_seconds
        self.page_size = page_size or settings.legacy_page_size
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._token: str | None = None

    async def __aenter__(self) -> "LegacyApiClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
            headers={"Accept": "application/json"},
        )
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("LegacyApiClient must be used as an async context manager")
        return self._client

    async def login(self) -> str:
        """
        Exchange the configured credentials for a token.

        Returns:
            The token (also kept for the following requests)

        Raises:
            ExternalServiceError: If the exchange fails or returns no token
        """
        if not self.email or not self.password:
            raise ExternalServiceError("Legacy API credentials are not configured")

        body = await self._request(
            "POST", "/login", json={"email": self.email, "password": self.password}
        )
        token = body.get("token") if isinstance(body, dict) else None
        if not token:
            raise ExternalServiceError("Legacy API login returned no token")

        self._token = str(token)
        logger.info("Authenticated against legacy API")
        return self._token

    async def fetch_admins(self) -> list[LegacyAdmin]:
        """
        Fetch the whole admin directory, page by page.

        Pages are requested from 1 until a page holds fewer records than the
        page size. Admins without a phone number are discarded.

        Raises:
            ExternalServiceError: If any page cannot be fetched
        """
        admins: list[LegacyAdmin] = []
        for page in range(1, MAX_ADMIN_PAGES + 1):
            rows = await self._get_list("/users", params={"page": page, "pageSize": self.page_size})
            page_admins = [
                admin for admin in self._parse(rows, LegacyAdmin) if admin.phone
            ]
            admins.extend(page_admins)
            logger.debug(f"Fetched admin page {page} ({len(rows)} records)")
            if len(rows) < self.page_size:
                break
        else:
            logger.warning(f"Admin directory pagination stopped after {MAX_ADMIN_PAGES} pages")

        logger.info(f"Fetched {len(admins)} admins from legacy API")
        return admins

    async def fetch_schedules(self) -> list[LegacySchedule]:
        """
        Fetch every schedule.

        Raises:
            ExternalServiceError: If the request fails
        """
        rows = await self._get_list("/schedules")
        schedules = self._parse(rows, LegacySchedule)
        logger.info(f"Fetched {len(schedules)} schedules from legacy API")
        return schedules

    async def fetch_attendance(self, schedule_id: str) -> list[LegacyAttendance]:
        """
        Fetch the attendance records of one schedule.

        Records without a member id are discarded.

        Raises:
            ExternalServiceError: If the request fails
        """
        rows = await self._get_list(
            "/attendance",
            params={
                "scheduleId": schedule_id,
                "start_date": settings.legacy_attendance_start_date,
                "end_date": settings.legacy_attendance_end_date,
            },
        )
        return [record for record in self._parse(rows, LegacyAttendance) if record.member_id]

    async def _get_list(self, path: str, params: dict[str, Any] | None = None) -> list[Any]:
        body = await self._request("GET", path, params=params)
        # Some endpoints wrap collections in an object
        if isinstance(body, dict):
            body = body.get("data", body.get("results", []))
        if not isinstance(body, list):
            raise ExternalServiceError(f"Unexpected response shape from legacy API {path}")
        return body

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        headers = {}
        if self._token:
            headers["Authorization"] = f"{self.token_scheme} {self._token}"

        try:
            response = await self.client.request(method, path, headers=headers, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            logger.warning(f"Legacy API {method} {path} timed out")
            raise ExternalServiceError(f"Legacy API {path} timed out") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"Legacy API {method} {path} returned {e.response.status_code}")
            raise ExternalServiceError(
                f"Legacy API {path} returned status {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            logger.warning(f"Legacy API {method} {path} failed: {e}")
            raise ExternalServiceError(f"Legacy API {path} is unreachable") from e
        except ValueError as e:
            raise ExternalServiceError(f"Legacy API {path} returned invalid JSON") from e

    @staticmethod
    def _parse(rows: list[Any], model: type[BaseModel]) -> list[Any]:
        parsed = []
        for row in rows:
            try:
                parsed.append(model.model_validate(row))
            except ValidationError as e:
                logger.warning(f"Skipping malformed {model.__name__} record: {e.error_count()} errors")
        return parsed
