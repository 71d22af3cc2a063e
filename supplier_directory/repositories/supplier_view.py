"""Query builder over the denormalized supplier view.

Only the predicates the store can evaluate live here: name substring and
segment membership. Identifier substring matching happens in the query
engine after retrieval.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from supplier_directory.domain.segment import Segment
from supplier_directory.domain.supplier import SegmentLink
from supplier_directory.domain.supplier_view import SupplierView
from supplier_directory.repositories.base import LIKE_ESCAPE, contains_pattern


class SupplierViewRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    def _filtered(self, name: str | None, segment: str | None):
        # The view changes under the session; never serve stale identity-map rows
        q = select(SupplierView).execution_options(populate_existing=True)
        if name:
            q = q.where(SupplierView.name.ilike(contains_pattern(name), escape=LIKE_ESCAPE))
        if segment:
            # Containment: the supplier is linked to a segment with exactly this name
            members = (
                select(SegmentLink.supplier_id)
                .join(Segment, Segment.id == SegmentLink.segment_id)
                .where(Segment.name == segment)
            )
            q = q.where(SupplierView.id.in_(members))
        return q

    @staticmethod
    def _ordered(q):
        return q.order_by(SupplierView.name.asc(), SupplierView.id.asc())

    async def page(
        self, *, name: str | None, segment: str | None, offset: int, limit: int
    ) -> tuple[list[SupplierView], int]:
        """Store-side window plus the store-reported total."""
        q = self._filtered(name, segment)
        count_q = select(func.count()).select_from(q.subquery())
        total = (await self._session.execute(count_q)).scalar_one()
        rows = await self._session.execute(self._ordered(q).offset(offset).limit(limit))
        return list(rows.scalars().all()), total

    async def all(self, *, name: str | None, segment: str | None) -> list[SupplierView]:
        """Every matching row, ordered by name, no window."""
        rows = await self._session.execute(self._ordered(self._filtered(name, segment)))
        return list(rows.scalars().all())
