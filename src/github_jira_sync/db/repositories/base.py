"""Generic async repository over one mapped model."""

from typing import Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from github_jira_sync.db.models import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Primary-key lookups, listing and counting for one model.

    The caller owns the session and its transaction; repositories only
    flush.

    Usage:
        class SubscriptionRepository(BaseRepository[Subscription]):
            def __init__(self, session: AsyncSession) -> None:
                super().__init__(session, Subscription)
    """

    def __init__(self, session: AsyncSession, model: type[ModelT]) -> None:
        self._session = session
        self._model = model

    @property
    def session(self) -> AsyncSession:
        return self._session

    async def get_by_id(self, id: int) -> ModelT | None:
        return await self._session.get(self._model, id)

    async def get_all(self, limit: int | None = None) -> list[ModelT]:
        """All rows in insertion (primary key) order."""
        stmt = select(self._model).order_by(*self._model.__table__.primary_key.columns)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    def add(self, entity: ModelT) -> ModelT:
        self._session.add(entity)
        return entity

    async def flush(self) -> None:
        await self._session.flush()

    async def delete(self, entity: ModelT) -> None:
        """Delete a row and flush so later queries in the session miss it."""
        await self._session.delete(entity)
        await self._session.flush()

    async def count(self) -> int:
        stmt = select(func.count()).select_from(self._model)
        result = await self._session.execute(stmt)
        return result.scalar_one()
