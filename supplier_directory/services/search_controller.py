"""DebouncedSearchController — turns keystrokes into directory queries.

Free-text fields (name, identifier) are debounced: every keystroke cancels
the pending timer and arms a new one, and only a timer that runs out
commits the typed values and re-queries from page 0. Segment selection and
page-size changes skip the timer. At most one timer is pending at a time.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from supplier_directory.core.config import settings
from supplier_directory.core.exceptions import AppException
from supplier_directory.schemas.supplier import SupplierFilters, SupplierViewOut
from supplier_directory.services.directory_query import DirectoryQueryEngine

logger = logging.getLogger(__name__)

DEBOUNCE_DELAY_SECONDS = 0.8

QueryFn = Callable[[SupplierFilters, int, int], Awaitable[tuple[list[SupplierViewOut], int]]]


@dataclass
class SearchResult:
    filters: SupplierFilters
    page: int
    page_size: int
    items: list[SupplierViewOut] = field(default_factory=list)
    total: int = 0
    error: AppException | None = None


ResultFn = Callable[[SearchResult], Awaitable[None]]


def engine_query(session_factory: async_sessionmaker[AsyncSession]) -> QueryFn:
    """A QueryFn that runs each query on its own session."""

    async def run(filters: SupplierFilters, page: int, page_size: int):
        async with session_factory() as session:
            return await DirectoryQueryEngine(session).list(filters, page, page_size)

    return run


class DebouncedSearchController:
    def __init__(
        self,
        query: QueryFn,
        on_result: ResultFn,
        *,
        page_size: int = settings.default_page_size,
        delay: float = DEBOUNCE_DELAY_SECONDS,
    ):
        self._query = query
        self._on_result = on_result
        self._delay = delay
        self._timer: asyncio.Task | None = None
        self._generation = 0

        self.pending = SupplierFilters()
        self.active = SupplierFilters()
        self.page = 0
        self.page_size = page_size
        self.last_result: SearchResult | None = None

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    # ------------------------------------------------------------------
    # Debounced input
    # ------------------------------------------------------------------

    def type_name(self, text: str) -> None:
        self.pending = self.pending.model_copy(update={"name": text})
        self._arm()

    def type_identifier(self, text: str) -> None:
        self.pending = self.pending.model_copy(update={"identifier": text})
        self._arm()

    # ------------------------------------------------------------------
    # Immediate input
    # ------------------------------------------------------------------

    async def select_segment(self, name: str | None) -> None:
        segment = name or None
        self.pending = self.pending.model_copy(update={"segment": segment})
        self.active = self.active.model_copy(update={"segment": segment})
        self.page = 0
        await self.refresh()

    async def set_page(self, page: int) -> None:
        self.page = page
        await self.refresh()

    async def set_page_size(self, page_size: int) -> None:
        self.page_size = page_size
        self.page = 0
        await self.refresh()

    async def clear(self) -> None:
        self._cancel()
        self.pending = SupplierFilters()
        self.active = SupplierFilters()
        self.page = 0
        await self.refresh()

    def close(self) -> None:
        self._cancel()

    async def refresh(self) -> None:
        """Query with the active filters and deliver the result.

        Results of a query overtaken by a newer one are dropped.
        """
        self._generation += 1
        generation = self._generation
        filters, page, page_size = self.active, self.page, self.page_size
        try:
            items, total = await self._query(filters, page, page_size)
            result = SearchResult(filters, page, page_size, items=items, total=total)
        except AppException as exc:
            logger.warning("Directory search failed: %s", exc.message)
            result = SearchResult(filters, page, page_size, error=exc)

        if generation != self._generation:
            return
        self.last_result = result
        await self._on_result(result)

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------

    def _arm(self) -> None:
        self._cancel()
        self._timer = asyncio.get_running_loop().create_task(self._commit_after_delay())
        self._timer.add_done_callback(self._report_timer_failure)

    @staticmethod
    def _report_timer_failure(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Debounced search commit failed: %s", exc, exc_info=exc)

    def _cancel(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _commit_after_delay(self) -> None:
        await asyncio.sleep(self._delay)
        # From here on the query is no longer cancellable by keystrokes
        self._timer = None
        if (self.pending.name, self.pending.identifier) == (self.active.name, self.active.identifier):
            return
        self.active = self.active.model_copy(
            update={"name": self.pending.name, "identifier": self.pending.identifier}
        )
        self.page = 0
        await self.refresh()
