"""Segment service — lookup-table CRUD with a delete guard."""


import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from supplier_directory.core.exceptions import ConflictError, NotFoundError, StoreError
from supplier_directory.core.pagination import PaginationParams
from supplier_directory.domain.segment import Segment
from supplier_directory.repositories.segment import SegmentRepository
from supplier_directory.repositories.supplier import SegmentLinkRepository
from supplier_directory.schemas.segment import SegmentInput
from supplier_directory.services.errors import store_errors, store_message
from supplier_directory.services.validation import (
    SEGMENT_NAME_MAX,
    SEGMENT_NAME_MIN,
    validate_name,
)

logger = logging.getLogger(__name__)

class SegmentService:
    def __init__(self, session: AsyncSession):
        self._session = session
        self._repo = SegmentRepository(session)
        self._links = SegmentLinkRepository(session)

    async def list_segments(self, pagination: PaginationParams, name: str | None = None):
        search = {"name": name.strip()} if name and name.strip() else None
        with store_errors("listing segments"):
            return await self._repo.list(
                offset=pagination.offset, limit=pagination.size, search=search
            )

    async def all_segments(self) -> list[Segment]:
        """Every segment, alphabetical; feeds selectors."""
        with store_errors("listing segments"):
            items, _ = await self._repo.list(limit=None)
        return items

    async def get_segment(self, segment_id: int) -> Segment:
        with store_errors(f"loading segment {segment_id}"):
            segment = await self._repo.get_by_id(segment_id)
        if not segment:
            raise NotFoundError("Segment", segment_id)
        return segment

    async def create_segment(self, data: SegmentInput) -> Segment:
        name = validate_name(
            data.name, entity="Segment", min_len=SEGMENT_NAME_MIN, max_len=SEGMENT_NAME_MAX
        )
        with store_errors("creating segment"):
            return await self._repo.create(name=name)

    async def update_segment(self, segment_id: int, data: SegmentInput) -> Segment:
        name = validate_name(
            data.name, entity="Segment", min_len=SEGMENT_NAME_MIN, max_len=SEGMENT_NAME_MAX
        )
        _ = await self.get_segment(segment_id)  # raises 404 if missing
        with store_errors(f"updating segment {segment_id}"):
            updated = await self._repo.update(segment_id, name=name)
        return updated  # type: ignore[return-value]

    async def delete_segment(self, segment_id: int) -> None:
        """Delete a segment that no supplier is linked to."""
        _ = await self.get_segment(segment_id)
        with store_errors(f"counting links of segment {segment_id}"):
            linked = await self._links.count_where(segment_id=segment_id)
        if linked:
            raise ConflictError(
                f"Segment '{segment_id}' is linked to {linked} supplier(s) and cannot be deleted"
            )
        try:
            await self._repo.delete(segment_id)
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error("Store failure while deleting segment %s: %s", segment_id, exc)
            raise StoreError(store_message(exc)) from exc
        logger.info("Deleted segment %s", segment_id)
