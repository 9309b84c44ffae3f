"""
Reconciliation of users with the legacy system of record.

A run:
    1. Logs in to the legacy API. Failure aborts the run before any write.
    2. Fetches the paginated admin directory.
    3. Fetches the schedules, then the attendance of every schedule in
       concurrent batches, each call bounded by the same timeout.
    4. Deduplicates attendance users by phone number. The last record seen
       for a phone wins.
    5. Inserts every external admin and user that has no local counterpart
       (same email or same deterministic id) under the actor's main account.
       Existing local users are never modified and nothing is ever deleted.

Steps 2 and 3 are best effort: a failure there is logged and the phase
contributes nothing, so a run with unchanged external data and a run with a
partially unavailable legacy API both converge without errors. Running the
same sync twice writes nothing the second time.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orgsync.core.config import settings
from orgsync.core.sanitize import sanitize_text
from orgsync.exceptions import (
    AppException,
    ExternalServiceError,
    InsufficientPermissionsError,
    NotFoundError,
    ReconciliationError,
)
from orgsync.models.account import Account
from orgsync.models.enums import AdminType, UserRole
from orgsync.models.user import User
from orgsync.repositories.account_repository import AccountRepository
from orgsync.repositories.user_repository import UserRepository
from orgsync.schemas.legacy import LegacyAdmin, LegacyAttendance, SyncSummary
from orgsync.services.legacy_client import LegacyApiClient
from orgsync.services.permission_service import PermissionService

logger = logging.getLogger(__name__)

UNKNOWN_EMAIL_DOMAIN = "unknown.invalid"


@dataclass
class ExternalUser:
    """External admin or attendee, normalized for insertion."""

    id: str
    first_name: str
    last_name: str
    email: str
    phone: str
    role: UserRole
    admin_type: AdminType | None = None


@dataclass
class OrganizationSync:
    """Outcome of sync_organization."""

    main_account: Account
    summary: SyncSummary
    users: list[User] = field(default_factory=list)


def _normalize(
    prefix: str,
    external_id: str,
    firstname: str | None,
    surname: str | None,
    email: str | None,
    phone: str | None,
    role: UserRole,
    admin_type: AdminType | None = None,
) -> ExternalUser:
    user_id = f"{prefix}-{external_id}"
    return ExternalUser(
        id=user_id,
        first_name=sanitize_text(firstname or "") or "Unknown",
        last_name=sanitize_text(surname or "") or "User",
        email=sanitize_text(email or "") or f"{user_id}@{UNKNOWN_EMAIL_DOMAIN}",
        phone=sanitize_text(phone or ""),
        role=role,
        admin_type=admin_type,
    )


def normalize_admin(admin: LegacyAdmin) -> ExternalUser:
    """Map a directory admin to a limited admin with id ``admin-<id>``."""
    return _normalize(
        "admin",
        admin.id,
        admin.firstname,
        admin.surname,
        admin.email,
        admin.phone,
        role=UserRole.admin,
        admin_type=AdminType.limited,
    )


def normalize_attendee(record: LegacyAttendance) -> ExternalUser:
    """Map an attendance record to a user with id ``user-<memberId>``."""
    return _normalize(
        "user",
        record.member_id,
        record.firstname,
        record.surname,
        record.email,
        record.phone,
        role=UserRole.user,
    )


def dedupe_by_phone(records: list[LegacyAttendance]) -> list[LegacyAttendance]:
    """
    Keep one attendance record per phone number.

    The last record seen for a phone wins. Records without a phone number
    cannot be deduplicated and are dropped.

    Example:
        >>> a = LegacyAttendance(memberId="1", phone="055")
        >>> b = LegacyAttendance(memberId="2", phone="055")
        >>> [r.member_id for r in dedupe_by_phone([a, b])]
        ['2']
    """
    by_phone: dict[str, LegacyAttendance] = {}
    for record in records:
        if record.phone:
            by_phone[record.phone] = record
    return list(by_phone.values())


class ReconciliationService:
    """
    Service that converges local users with the legacy system of record.

    Args:
        session: Async database session
        client_factory: Callable returning a LegacyApiClient (tests inject
            one backed by httpx.MockTransport)
    """

    def __init__(
        self,
        session: AsyncSession,
        client_factory: Callable[[], LegacyApiClient] = LegacyApiClient,
    ):
        self.session = session
        self.client_factory = client_factory
        self.account_repo = AccountRepository(session)
        self.user_repo = UserRepository(session)
        self.permission_service = PermissionService(session)

    async def sync_organization(self, actor: User) -> OrganizationSync:
        """
        Synchronize the actor's organization and return its users.

        Args:
            actor: Authenticated admin

        Returns:
            OrganizationSync with the run summary and every user whose
            account lies in the organization

        Raises:
            InsufficientPermissionsError: If actor is not an admin
            NotFoundError: If the actor's main account cannot be resolved
            ReconciliationError: If the legacy API login fails or the insert
                collides with a concurrent run
        """
        if actor.role != UserRole.admin:
            logger.warning(
                f"Permission denied for user {actor.id} on accounts.getOrganizationUsers: "
                "not an admin"
            )
            raise InsufficientPermissionsError("Only admins can view organization users")

        main_account = await self.permission_service.resolve_main_account(actor)
        if main_account is None:
            logger.error(f"Main account of user {actor.id} (account {actor.account_id}) not found")
            raise NotFoundError("Main account")

        logger.info(f"User {actor.id} started synchronization of organization {main_account.id}")
        summary = SyncSummary()

        async with self.client_factory() as client:
            try:
                await client.login()
            except ExternalServiceError as e:
                logger.error(f"Synchronization aborted, legacy API login failed: {e.message}")
                raise ReconciliationError("Could not authenticate against the legacy API") from e

            admins = await self._fetch_admins(client)
            attendance, summary.attendance_failed = await self._fetch_attendance(client)

        attendees = dedupe_by_phone(attendance)
        summary.admins_fetched = len(admins)
        summary.users_fetched = len(attendees)

        external = [normalize_admin(a) for a in admins] + [normalize_attendee(r) for r in attendees]
        summary.created, summary.skipped_existing = await self._insert_missing(
            external, main_account.id
        )

        account_ids = await self.account_repo.get_subtree_ids(main_account.id)
        users = await self.user_repo.list_by_accounts(account_ids)

        logger.info(
            f"Synchronization of organization {main_account.id} finished: "
            f"{summary.created} created, {summary.skipped_existing} already present, "
            f"{summary.attendance_failed} attendance calls failed"
        )
        return OrganizationSync(main_account=main_account, summary=summary, users=users)

    async def _fetch_admins(self, client: LegacyApiClient) -> list[LegacyAdmin]:
        try:
            return await client.fetch_admins()
        except ExternalServiceError as e:
            logger.warning(f"Admin directory unavailable, continuing without admins: {e.message}")
            return []

    async def _fetch_attendance(self, client: LegacyApiClient) -> tuple[list[LegacyAttendance], int]:
        """Fetch attendance of every schedule in bounded batches; returns (records, failed calls)."""
        try:
            schedules = await client.fetch_schedules()
        except ExternalServiceError as e:
            logger.warning(f"Schedules unavailable, continuing without attendance: {e.message}")
            return [], 0

        batch_size = settings.legacy_attendance_batch_size
        timeout = settings.legacy_api_timeout_seconds
        schedule_ids = [schedule.id for schedule in schedules]

        records: list[LegacyAttendance] = []
        failed = 0
        for start in range(0, len(schedule_ids), batch_size):
            batch = schedule_ids[start:start + batch_size]
            results = await asyncio.gather(
                *(asyncio.wait_for(client.fetch_attendance(sid), timeout) for sid in batch),
                return_exceptions=True,
            )
            for schedule_id, result in zip(batch, results):
                if isinstance(result, BaseException):
                    failed += 1
                    logger.warning(
                        f"Attendance of schedule {schedule_id} unavailable: "
                        f"{type(result).__name__}"
                    )
                    continue
                records.extend(result)
            logger.debug(f"Processed attendance batch starting at {start} ({len(batch)} schedules)")

        logger.info(
            f"Fetched {len(records)} attendance records from {len(schedule_ids)} schedules "
            f"({failed} failed)"
        )
        return records, failed

    async def _insert_missing(
        self, external: list[ExternalUser], main_account_id: str
    ) -> tuple[int, int]:
        """Insert external users with no local counterpart; returns (created, skipped)."""
        existing_emails, existing_ids = await self.user_repo.find_existing(
            [u.email for u in external], [u.id for u in external]
        )

        created = 0
        skipped = 0
        for external_user in external:
            if external_user.email in existing_emails or external_user.id in existing_ids:
                skipped += 1
                continue

            self.session.add(
                User(
                    id=external_user.id,
                    first_name=external_user.first_name,
                    last_name=external_user.last_name,
                    email=external_user.email,
                    phone=external_user.phone,
                    role=external_user.role,
                    admin_type=external_user.admin_type,
                    account_id=main_account_id,
                )
            )
            # Later records of the same run must see this one
            existing_emails.add(external_user.email)
            existing_ids.add(external_user.id)
            created += 1

        if created:
            try:
                await self.session.flush()
            except IntegrityError as e:
                await self.session.rollback()
                logger.error(f"Synchronization insert collided with a concurrent write: {e.orig}")
                raise ReconciliationError("Synchronization collided with a concurrent update") from e
            await self.session.commit()

        return created, skipped


async def run_periodic_sync(
    sessionmaker: async_sessionmaker[AsyncSession],
    interval_seconds: float,
    actor_email: str,
    client_factory: Callable[[], LegacyApiClient] = LegacyApiClient,
) -> None:
    """
    Synchronize the organization of ``actor_email`` every ``interval_seconds``.

    Runs until cancelled. Failed runs are logged and retried at the next tick.
    """
    logger.info(f"Periodic synchronization enabled every {interval_seconds}s as {actor_email}")
    while True:
        await asyncio.sleep(interval_seconds)
        async with sessionmaker() as session:
            try:
                actor = await UserRepository(session).get_by_email(actor_email)
                if actor is None:
                    logger.warning(f"Periodic synchronization skipped: {actor_email} not found")
                    continue
                await ReconciliationService(session, client_factory).sync_organization(actor)
            except AppException as e:
                await session.rollback()
                logger.error(f"Periodic synchronization failed: {e.message}")
            except Exception as e:
                await session.rollback()
                logger.exception(f"Periodic synchronization crashed: {e}")
