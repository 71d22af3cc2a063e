import asyncio
import logging

import pytest

from supplier_directory.core.exceptions import StoreError
from supplier_directory.schemas.supplier import SupplierFilters, SupplierInput
from supplier_directory.services.reconciler import AssociationReconciler
from supplier_directory.services.search_controller import (
    DEBOUNCE_DELAY_SECONDS,
    DebouncedSearchController,
    SearchResult,
    engine_query,
)

DELAY = 0.05
SETTLE = DELAY * 4


class Recorder:
    def __init__(self) -> None:
        self.calls: list[tuple[SupplierFilters, int, int]] = []
        self.results: list[SearchResult] = []

    async def query(self, filters: SupplierFilters, page: int, page_size: int):
        self.calls.append((filters, page, page_size))
        return [], 0

    async def on_result(self, result: SearchResult) -> None:
        self.results.append(result)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def controller(recorder: Recorder) -> DebouncedSearchController:
    return DebouncedSearchController(recorder.query, recorder.on_result, delay=DELAY)


def test_default_delay_is_800_ms() -> None:
    assert DEBOUNCE_DELAY_SECONDS == 0.8


async def test_burst_of_keystrokes_should_issue_one_query_with_last_value(
    controller: DebouncedSearchController, recorder: Recorder
) -> None:
    for text in ["a", "ac", "acm", "acme"]:
        controller.type_name(text)
        await asyncio.sleep(DELAY / 5)
    assert recorder.calls == []
    assert controller.timer_pending

    await asyncio.sleep(SETTLE)

    assert len(recorder.calls) == 1
    filters, page, _ = recorder.calls[0]
    assert filters.name == "acme"
    assert page == 0
    assert controller.active.name == "acme"
    assert not controller.timer_pending


async def test_debounced_commit_should_reset_page(
    controller: DebouncedSearchController, recorder: Recorder
) -> None:
    await controller.set_page(3)
    controller.type_identifier("345")
    await asyncio.sleep(SETTLE)

    assert [page for _, page, _ in recorder.calls] == [3, 0]
    assert recorder.calls[-1][0].identifier == "345"


async def test_unchanged_text_should_not_requery(
    controller: DebouncedSearchController, recorder: Recorder
) -> None:
    controller.type_name("acme")
    await asyncio.sleep(SETTLE)
    controller.type_name("acme")
    await asyncio.sleep(SETTLE)

    assert len(recorder.calls) == 1


async def test_segment_selection_should_apply_immediately(
    controller: DebouncedSearchController, recorder: Recorder
) -> None:
    await controller.set_page(2)
    await controller.select_segment("Food")

    assert len(recorder.calls) == 2
    filters, page, _ = recorder.calls[-1]
    assert filters.segment == "Food"
    assert page == 0


async def test_segment_selection_should_not_commit_pending_text(
    controller: DebouncedSearchController, recorder: Recorder
) -> None:
    controller.type_name("ac")
    await controller.select_segment("Food")

    assert recorder.calls[-1][0].name is None
    await asyncio.sleep(SETTLE)
    assert recorder.calls[-1][0].name == "ac"
    assert recorder.calls[-1][0].segment == "Food"


async def test_page_size_change_should_reset_page(
    controller: DebouncedSearchController, recorder: Recorder
) -> None:
    await controller.set_page(4)
    await controller.set_page_size(50)

    assert recorder.calls[-1][1:] == (0, 50)


async def test_clear_should_cancel_pending_timer_and_reset(
    controller: DebouncedSearchController, recorder: Recorder
) -> None:
    await controller.select_segment("Food")
    controller.type_name("acme")
    await controller.clear()
    await asyncio.sleep(SETTLE)

    assert len(recorder.calls) == 2
    assert recorder.calls[-1][0] == SupplierFilters()
    assert not controller.timer_pending


async def test_query_errors_should_be_delivered_as_results(recorder: Recorder) -> None:
    async def failing(filters, page, page_size):
        raise StoreError("connection refused")

    controller = DebouncedSearchController(failing, recorder.on_result, delay=DELAY)
    await controller.refresh()

    assert len(recorder.results) == 1
    assert isinstance(recorder.results[0].error, StoreError)
    assert recorder.results[0].items == []


async def test_failed_debounced_commit_should_be_logged(
    recorder: Recorder, caplog: pytest.LogCaptureFixture
) -> None:
    async def broken(filters, page, page_size):
        raise RuntimeError("socket closed")

    controller = DebouncedSearchController(broken, recorder.on_result, delay=DELAY)
    with caplog.at_level(logging.ERROR, logger="supplier_directory.services.search_controller"):
        controller.type_name("acme")
        await asyncio.sleep(SETTLE)

    messages = [r.getMessage() for r in caplog.records if r.levelno == logging.ERROR]
    assert messages == ["Debounced search commit failed: socket closed"]
    assert recorder.results == []
    assert not controller.timer_pending


async def test_overtaken_results_should_be_dropped(recorder: Recorder) -> None:
    release = asyncio.Event()

    async def query(filters, page, page_size):
        if page == 1:
            await release.wait()
        return [], page

    controller = DebouncedSearchController(query, recorder.on_result, delay=DELAY)
    slow = asyncio.create_task(controller.set_page(1))
    await asyncio.sleep(0)
    await controller.set_page(2)
    release.set()
    await slow

    assert [r.page for r in recorder.results] == [2]
    assert controller.last_result is not None
    assert controller.last_result.page == 2


async def test_engine_query_should_run_against_the_directory(session, session_factory) -> None:
    await AssociationReconciler(session).create(
        SupplierInput(name="Acme", identifiers=["12345678000195"])
    )
    await AssociationReconciler(session).create(SupplierInput(name="Other"))
    recorder = Recorder()
    controller = DebouncedSearchController(
        engine_query(session_factory), recorder.on_result, delay=DELAY
    )

    controller.type_identifier("345")
    await asyncio.sleep(DELAY + 0.5)
    controller.close()

    assert len(recorder.results) == 1
    assert recorder.results[0].total == 1
    assert recorder.results[0].items[0].name == "Acme"
