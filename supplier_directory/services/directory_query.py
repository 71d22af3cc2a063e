"""DirectoryQueryEngine — filtered, paginated listing over the supplier view.

Name and segment filters are evaluated by the database. The identifier
filter (substring of any identifier in the aggregated list) is not, so when
it is active the engine fetches every row that passes the other filters,
filters in process and slices the page itself. Paginating before that
filter would make `total` and the page disagree with what the caller sees.

Callers never learn which path ran.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from supplier_directory.core.exceptions import ValidationError
from supplier_directory.core.pagination import page_window
from supplier_directory.domain.supplier_view import SupplierView
from supplier_directory.repositories.supplier_view import SupplierViewRepository
from supplier_directory.schemas.supplier import SupplierFilters, SupplierViewOut
from supplier_directory.services.errors import store_errors

logger = logging.getLogger(__name__)


def _present(values: list | None) -> list[str]:
    """Drop the null placeholders the view's aggregates can carry."""
    return [v for v in (values or []) if v is not None]


def to_view_out(row: SupplierView) -> SupplierViewOut:
    return SupplierViewOut(
        id=row.id,
        name=row.name,
        logo=row.logo,
        created_at=row.created_at,
        identifiers=_present(row.identifiers),
        segment_names=_present(row.segment_names),
    )


def matches_identifier(row: SupplierViewOut, needle: str) -> bool:
    needle = needle.lower()
    return any(needle in identifier.lower() for identifier in row.identifiers)


class DirectoryQueryEngine:
    def __init__(self, session: AsyncSession):
        self._view = SupplierViewRepository(session)

    async def list(
        self, filters: SupplierFilters | None, page: int, page_size: int
    ) -> tuple[list[SupplierViewOut], int]:
        """Return (items, total) for the 0-based *page*."""
        if page < 0:
            raise ValidationError("page must be >= 0")
        if page_size < 1:
            raise ValidationError("page size must be >= 1")
        filters = (filters or SupplierFilters()).normalized()

        if filters.identifier is None:
            return await self._list_native(filters, page, page_size)
        return await self._list_hybrid(filters, page, page_size)

    async def _list_native(
        self, filters: SupplierFilters, page: int, page_size: int
    ) -> tuple[list[SupplierViewOut], int]:
        start, _ = page_window(page, page_size)
        with store_errors("listing suppliers"):
            rows, total = await self._view.page(
                name=filters.name, segment=filters.segment, offset=start, limit=page_size
            )
        logger.debug("Native listing: page=%d size=%d total=%d", page, page_size, total)
        return [to_view_out(r) for r in rows], total

    async def _list_hybrid(
        self, filters: SupplierFilters, page: int, page_size: int
    ) -> tuple[list[SupplierViewOut], int]:
        with store_errors("listing suppliers"):
            rows = await self._view.all(name=filters.name, segment=filters.segment)

        matched = [
            out for out in (to_view_out(r) for r in rows)
            if matches_identifier(out, filters.identifier)  # type: ignore[arg-type]
        ]
        start, stop = page_window(page, page_size)
        logger.debug(
            "Hybrid listing: fetched=%d matched=%d page=%d size=%d",
            len(rows), len(matched), page, page_size,
        )
        return matched[start:stop], len(matched)
