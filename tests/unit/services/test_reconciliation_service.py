"""
Unit tests for the reconciliation helpers and the fetch phase.

Insertion and the full run against a database are covered by
tests/integration/test_store.py.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from orgsync.core.config import settings
from orgsync.exceptions import ExternalServiceError
from orgsync.models.enums import AdminType, UserRole
from orgsync.schemas.legacy import LegacyAdmin, LegacyAttendance, LegacySchedule
from orgsync.services.reconciliation_service import (
    ReconciliationService,
    dedupe_by_phone,
    normalize_admin,
    normalize_attendee,
)


class TestNormalize:
    def test_admin_gets_prefixed_id_and_limited_type(self):
        user = normalize_admin(
            LegacyAdmin(id="17", firstname="Ama", surname="Owusu", email="ama@x.org", phone="0201")
        )

        assert user.id == "admin-17"
        assert user.role == UserRole.admin
        assert user.admin_type == AdminType.limited
        assert (user.first_name, user.last_name, user.email, user.phone) == (
            "Ama",
            "Owusu",
            "ama@x.org",
            "0201",
        )

    def test_attendee_gets_prefixed_id_and_no_admin_type(self):
        user = normalize_attendee(LegacyAttendance(memberId="88", firstname="Yaw", phone="0241"))

        assert user.id == "user-88"
        assert user.role == UserRole.user
        assert user.admin_type is None

    def test_missing_fields_get_fallbacks(self):
        user = normalize_attendee(LegacyAttendance(memberId="5"))

        assert user.first_name == "Unknown"
        assert user.last_name == "User"
        assert user.email == "user-5@unknown.invalid"
        assert user.phone == ""

    def test_names_are_sanitized(self):
        user = normalize_admin(LegacyAdmin(id="1", firstname="<b>Kwame</b>", phone="1"))

        assert user.first_name == "Kwame"


class TestDedupeByPhone:
    def test_last_record_for_a_phone_wins(self):
        records = [
            LegacyAttendance(memberId="1", phone="055"),
            LegacyAttendance(memberId="2", phone="024"),
            LegacyAttendance(memberId="3", phone="055"),
        ]

        result = dedupe_by_phone(records)

        assert sorted(r.member_id for r in result) == ["2", "3"]

    def test_records_without_phone_are_dropped(self):
        records = [LegacyAttendance(memberId="1", phone=""), LegacyAttendance(memberId="2")]

        assert dedupe_by_phone(records) == []


class FakeClient:
    """Stand-in for LegacyApiClient with scripted attendance behavior."""

    def __init__(self, schedules, attendance):
        self.schedules = schedules
        self.attendance = attendance
        self.calls = []

    async def fetch_schedules(self):
        if isinstance(self.schedules, Exception):
            raise self.schedules
        return [LegacySchedule(id=s) for s in self.schedules]

    async def fetch_attendance(self, schedule_id):
        self.calls.append(schedule_id)
        behavior = self.attendance[schedule_id]
        if behavior == "fail":
            raise ExternalServiceError("boom")
        if behavior == "hang":
            await asyncio.sleep(60)
        return behavior


@pytest.fixture
def reconciliation_service():
    with patch("orgsync.services.reconciliation_service.AccountRepository"), \
         patch("orgsync.services.reconciliation_service.UserRepository"), \
         patch("orgsync.services.reconciliation_service.PermissionService"):
        service = ReconciliationService(AsyncMock())
    return service


class TestFetchAttendance:
    @pytest.mark.asyncio
    async def test_failures_and_timeouts_are_counted_not_raised(self, reconciliation_service):
        client = FakeClient(
            ["s1", "s2", "s3"],
            {
                "s1": [LegacyAttendance(memberId="1", phone="055")],
                "s2": "fail",
                "s3": "hang",
            },
        )

        with patch.object(settings, "legacy_api_timeout_seconds", 0.05), \
             patch.object(settings, "legacy_attendance_batch_size", 2):
            records, failed = await reconciliation_service._fetch_attendance(client)

        assert [r.member_id for r in records] == ["1"]
        assert failed == 2
        assert client.calls == ["s1", "s2", "s3"]

    @pytest.mark.asyncio
    async def test_schedules_unavailable(self, reconciliation_service):
        client = FakeClient(ExternalServiceError("down"), {})

        records, failed = await reconciliation_service._fetch_attendance(client)

        assert records == []
        assert failed == 0

    @pytest.mark.asyncio
    async def test_admin_directory_unavailable(self, reconciliation_service):
        client = AsyncMock()
        client.fetch_admins.side_effect = ExternalServiceError("down")

        assert await reconciliation_service._fetch_admins(client) == []
