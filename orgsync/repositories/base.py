"""
Generic repository shared by the account and user repositories.

Repositories only flush. The service that owns an operation commits once
at its end, or rolls the whole operation back, so a repository call never
makes part of an operation visible to other sessions.
"""

from typing import Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orgsync.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Lookup by id and flush-based persistence for one model.

    Usage:
        class AccountRepository(BaseRepository[Account]):
            def __init__(self, session: AsyncSession):
                super().__init__(Account, session)
    """

    def __init__(self, model: type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    async def get_by_id(self, record_id: str) -> ModelType | None:
        """Load one record, or None when the id is unknown."""
        result = await self.session.execute(select(self.model).where(self.model.id == record_id))
        return result.scalar_one_or_none()

    async def add(self, instance: ModelType) -> ModelType:
        """
        Insert a new record.

        The flush assigns the generated id and timestamps and surfaces unique
        constraint violations (IntegrityError) to the calling service.
        """
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def update(self, instance: ModelType) -> ModelType:
        """Flush attribute changes already applied to the instance."""
        await self.session.flush()
        await self.session.refresh(instance)
        return instance
