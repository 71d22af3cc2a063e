"""Generic async repository with pagination, bulk writes and delete-by-filter."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Generic, TypeVar

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from supplier_directory.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)

LIKE_ESCAPE = "\\"


def contains_pattern(value: str) -> str:
    """ILIKE pattern matching *value* literally anywhere in the column."""
    escaped = (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


class BaseRepository(Generic[ModelT]):
    """Generic CRUD repository.

    Deletes are hard deletes; child rows go away through ON DELETE CASCADE.
    """

    model: type[ModelT]

    def __init__(self, session: AsyncSession):
        self._session = session

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _base_query(self):
        return select(self.model)

    def _apply_filters(self, q, filters: dict[str, Any] | None, search: dict[str, str] | None):
        # Equality filters
        if filters:
            for col_name, value in filters.items():
                if value is not None and hasattr(self.model, col_name):
                    q = q.where(getattr(self.model, col_name) == value)
        # Case-insensitive substring filters
        if search:
            for col_name, value in search.items():
                if value and hasattr(self.model, col_name):
                    q = q.where(
                        getattr(self.model, col_name).ilike(contains_pattern(value), escape=LIKE_ESCAPE)
                    )
        return q

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_by_id(self, entity_id: int) -> ModelT | None:
        result = await self._session.execute(
            self._base_query().where(self.model.id == entity_id)
        )
        return result.scalars().first()

    async def exists(self, entity_id: int) -> bool:
        q = select(func.count()).select_from(self.model).where(self.model.id == entity_id)
        return (await self._session.execute(q)).scalar_one() > 0

    async def list(
        self,
        *,
        offset: int = 0,
        limit: int | None = 20,
        order_by: str = "name",
        order: str = "asc",
        filters: dict[str, Any] | None = None,
        search: dict[str, str] | None = None,
    ) -> tuple[list[ModelT], int]:
        """Return (items, total_count) with pagination and optional column filters."""
        q = self._apply_filters(self._base_query(), filters, search)

        # Count
        count_q = select(func.count()).select_from(q.subquery())
        total = (await self._session.execute(count_q)).scalar_one()

        # Order + paginate
        col = getattr(self.model, order_by, None)
        if col is not None:
            q = q.order_by(col.desc() if order == "desc" else col.asc(), self.model.id.asc())
        if limit is not None:
            q = q.offset(offset).limit(limit)

        items = (await self._session.execute(q)).scalars().all()
        return list(items), total

    async def find_missing_ids(self, ids: Iterable[int]) -> list[int]:
        """Return the subset of *ids* that has no row."""
        wanted = set(ids)
        if not wanted:
            return []
        result = await self._session.execute(
            select(self.model.id).where(self.model.id.in_(wanted))
        )
        found = set(result.scalars().all())
        return sorted(wanted - found)

    async def count_where(self, **criteria: Any) -> int:
        q = select(func.count()).select_from(self.model)
        for col_name, value in criteria.items():
            q = q.where(getattr(self.model, col_name) == value)
        return (await self._session.execute(q)).scalar_one()

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def create(self, **kwargs: Any) -> ModelT:
        instance = self.model(**kwargs)
        self._session.add(instance)
        await self._session.flush()  # populate id
        await self._session.refresh(instance)
        return instance

    async def bulk_create(self, rows: list[dict[str, Any]]) -> None:
        if not rows:
            return
        await self._session.execute(insert(self.model), rows)
        await self._session.flush()

    async def update(self, entity_id: int, **kwargs: Any) -> ModelT | None:
        kwargs.pop("id", None)
        kwargs.pop("created_at", None)

        result = await self._session.execute(
            update(self.model)
            .where(self.model.id == entity_id)
            .values(**kwargs)
            .execution_options(synchronize_session=False)
        )
        await self._session.flush()
        if result.rowcount == 0:
            return None
        instance = await self.get_by_id(entity_id)
        if instance is not None:
            await self._session.refresh(instance)
        return instance

    async def delete(self, entity_id: int) -> bool:
        result = await self._session.execute(
            delete(self.model).where(self.model.id == entity_id)
        )
        await self._session.flush()
        return result.rowcount > 0

    async def delete_where(self, **criteria: Any) -> int:
        q = delete(self.model)
        for col_name, value in criteria.items():
            q = q.where(getattr(self.model, col_name) == value)
        result = await self._session.execute(q)
        await self._session.flush()
        return result.rowcount
