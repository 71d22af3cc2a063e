"""Segment CRUD router."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from supplier_directory.core.pagination import PaginationParams
from supplier_directory.core.response import DataResponse, ListResponse, paginated
from supplier_directory.db.base import get_db
from supplier_directory.schemas.segment import SegmentInput, SegmentOut
from supplier_directory.services.segment import SegmentService

router = APIRouter(prefix="/segments", tags=["Segments"])


@router.get("", response_model=ListResponse[SegmentOut])
async def list_segments(
    name: Optional[str] = Query(default=None, description="Substring of the segment name"),
    pagination: PaginationParams = Depends(),
    session: AsyncSession = Depends(get_db),
):
    """List segments (paginated, ordered by name)."""
    items, total = await SegmentService(session).list_segments(pagination, name=name)
    return paginated(
        [SegmentOut.model_validate(s) for s in items],
        total, pagination.page, pagination.size,
    )


@router.get("/all", response_model=DataResponse[list[SegmentOut]])
async def all_segments(session: AsyncSession = Depends(get_db)):
    """Every segment, alphabetical (for selectors)."""
    items = await SegmentService(session).all_segments()
    return {"data": [SegmentOut.model_validate(s) for s in items]}


@router.post("", response_model=DataResponse[SegmentOut], status_code=status.HTTP_201_CREATED)
async def create_segment(
    body: SegmentInput,
    session: AsyncSession = Depends(get_db),
):
    segment = await SegmentService(session).create_segment(body)
    return {"data": SegmentOut.model_validate(segment)}


@router.get("/{segment_id}", response_model=DataResponse[SegmentOut])
async def get_segment(
    segment_id: int,
    session: AsyncSession = Depends(get_db),
):
    segment = await SegmentService(session).get_segment(segment_id)
    return {"data": SegmentOut.model_validate(segment)}


@router.put("/{segment_id}", response_model=DataResponse[SegmentOut])
async def update_segment(
    segment_id: int,
    body: SegmentInput,
    session: AsyncSession = Depends(get_db),
):
    segment = await SegmentService(session).update_segment(segment_id, body)
    return {"data": SegmentOut.model_validate(segment)}


@router.delete("/{segment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_segment(
    segment_id: int,
    session: AsyncSession = Depends(get_db),
):
    """Delete a segment. Fails with 409 while suppliers are still linked to it."""
    await SegmentService(session).delete_segment(segment_id)
