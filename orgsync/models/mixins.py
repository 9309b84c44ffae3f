"""
Column mixins shared by accounts and users.

Timestamps are timezone-aware and always stored in UTC. They are set by the
application rather than the database so that records created inside one
reconciliation run carry the time of the run, on PostgreSQL and SQLite alike.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, mapped_column


def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(UTC)


class TimestampMixin:
    """Adds created_at (indexed, for listing order) and updated_at."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )
