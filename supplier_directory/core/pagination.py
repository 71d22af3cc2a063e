"""Pagination helpers for list endpoints."""


from fastapi import Query
from pydantic import BaseModel

from supplier_directory.core.config import settings


class PaginationParams:
    """FastAPI dependency for `?page=0&size=20`. Pages are 0-based."""

    def __init__(
        self,
        page: int = Query(default=0, ge=0, description="Page number (0-based)"),
        size: int = Query(
            default=settings.default_page_size,
            ge=1,
            le=settings.max_page_size,
            description="Items per page",
        ),
    ):
        self.page = page
        self.size = size

    @property
    def offset(self) -> int:
        return self.page * self.size


def page_window(page: int, size: int) -> tuple[int, int]:
    """Return the half-open `[start, stop)` slice for a 0-based page."""
    start = page * size
    return start, start + size


class PageMeta(BaseModel):
    total: int
    page: int
    size: int
    pages: int

    model_config = {"populate_by_name": True}
