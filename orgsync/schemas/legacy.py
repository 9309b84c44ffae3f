"""
Schemas for records returned by the legacy API.

Only the consumed fields are declared; everything else is ignored. Numeric
identifiers and phone numbers are coerced to strings because the legacy API
is not consistent about their JSON type.
"""

from pydantic import BaseModel, ConfigDict, Field

from orgsync.models.enums import AccountType
from orgsync.schemas.common import CamelResponse
from orgsync.schemas.user import OrganizationUser


class LegacyRecord(BaseModel):
    """Base for legacy API records."""

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        coerce_numbers_to_str=True,
        str_strip_whitespace=True,
    )


class LegacyAdmin(LegacyRecord):
    """Entry of the paginated admin directory (GET /users)."""

    id: str
    firstname: str | None = None
    surname: str | None = None
    email: str | None = None
    phone: str | None = None


class LegacySchedule(LegacyRecord):
    """Schedule (GET /schedules). Only the id is used."""

    id: str


class LegacyAttendance(LegacyRecord):
    """Attendance record (GET /attendance). Records without a member id are discarded."""

    member_id: str | None = Field(default=None, alias="memberId")
    firstname: str | None = None
    surname: str | None = None
    email: str | None = None
    phone: str | None = None


class SyncSummary(CamelResponse):
    """
    Counters of one reconciliation run.

    Attributes:
        created: Users inserted by this run
        skipped_existing: External records already present locally
        admins_fetched: Admins returned by the directory (with a phone)
        users_fetched: Attendance users left after deduplication
        attendance_failed: Attendance calls that failed or timed out
    """

    created: int = 0
    skipped_existing: int = 0
    admins_fetched: int = 0
    users_fetched: int = 0
    attendance_failed: int = 0


class OrganizationUsersResult(CamelResponse):
    """Result of accounts.getOrganizationUsers."""

    main_account_id: str
    main_account_type: AccountType
    summary: SyncSummary
    users: list[OrganizationUser]
