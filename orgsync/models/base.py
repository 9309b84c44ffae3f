"""
Base model class for all database models.

This module provides the declarative base and common model configuration.
All SQLAlchemy models should inherit from Base.
"""

import uuid

from sqlalchemy import MetaData, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Naming convention for constraints
# This ensures consistent naming across all database objects
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Identifiers are text: random UUIDs for records created through the API,
# deterministic "admin-<id>" / "user-<id>" keys for synchronized records.
ID_LENGTH = 64


def generate_id() -> str:
    """Generate a random identifier for a new record."""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """
    Base class for all database models.

    Provides:
    - Text primary key (id column)
    - Naming convention for constraints
    """

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        primary_key=True,
        default=generate_id,
    )

    def __repr__(self) -> str:
        """
        String representation of model instance.

        Returns:
            String in format: ModelName(id=...)
        """
        return f"{self.__class__.__name__}(id={self.id})"
