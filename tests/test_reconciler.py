import logging
from collections import Counter

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from supplier_directory.core.exceptions import (
    NotFoundError,
    PartialWriteError,
    StoreError,
    ValidationError,
)
from supplier_directory.domain.reconcile_intent import ReconcileIntent
from supplier_directory.domain.supplier import SegmentLink, Supplier, SupplierIdentifier
from supplier_directory.repositories.supplier import (
    SegmentLinkRepository,
    SupplierIdentifierRepository,
    SupplierRepository,
)
from supplier_directory.schemas.supplier import SupplierInput
from supplier_directory.services.reconciler import (
    STEP_IDENTIFIERS,
    STEP_SEGMENTS,
    STEP_SUPPLIER,
    AssociationReconciler,
)
from tests.conftest import store_failure


async def _count(session: AsyncSession, model) -> int:
    return (await session.execute(select(func.count()).select_from(model))).scalar_one()


async def _fail(*args, **kwargs):
    raise store_failure()


def _input(**overrides) -> SupplierInput:
    values = {"name": "Acme", "logo": None, "identifiers": [], "segment_ids": []}
    values.update(overrides)
    return SupplierInput(**values)


async def test_create_should_store_canonical_identifiers_and_links(
    session: AsyncSession, segments: dict[str, int]
) -> None:
    reconciler = AssociationReconciler(session)
    data = _input(
        identifiers=["12345678000195", "11.222.333/0001-81"],
        segment_ids=[segments["Food"], segments["Fashion"]],
    )
    supplier = await reconciler.create(data)

    detail = await reconciler.get(supplier.id)
    assert Counter(detail.identifiers) == Counter(["12.345.678/0001-95", "11.222.333/0001-81"])
    assert Counter(detail.segment_ids) == Counter([segments["Food"], segments["Fashion"]])
    assert supplier.created_at is not None


async def test_create_should_allow_empty_associations(session: AsyncSession) -> None:
    supplier = await AssociationReconciler(session).create(_input(name="Lonely Ltd"))

    assert supplier.id is not None
    assert await _count(session, SupplierIdentifier) == 0
    assert await _count(session, SegmentLink) == 0


async def test_create_should_keep_duplicate_identifiers(session: AsyncSession) -> None:
    reconciler = AssociationReconciler(session)
    supplier = await reconciler.create(
        _input(identifiers=["12345678000195", "12.345.678/0001-95"])
    )
    detail = await reconciler.get(supplier.id)
    assert detail.identifiers == ["12.345.678/0001-95", "12.345.678/0001-95"]


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": "A"},
        {"logo": "not-a-url"},
        {"identifiers": ["123"]},
    ],
)
async def test_create_should_write_nothing_when_invalid(session: AsyncSession, overrides) -> None:
    with pytest.raises(ValidationError):
        await AssociationReconciler(session).create(_input(**overrides))
    assert await _count(session, Supplier) == 0


async def test_create_should_reject_unknown_segment_ids(
    session: AsyncSession, segments: dict[str, int]
) -> None:
    with pytest.raises(ValidationError) as exc:
        await AssociationReconciler(session).create(_input(segment_ids=[segments["Food"], 999]))
    assert "999" in exc.value.message
    assert await _count(session, Supplier) == 0


async def test_update_should_replace_with_empty_sets(
    session: AsyncSession, segments: dict[str, int]
) -> None:
    reconciler = AssociationReconciler(session)
    supplier = await reconciler.create(
        _input(identifiers=["12345678000195"], segment_ids=[segments["Food"]])
    )

    await reconciler.update(supplier.id, _input(name="Acme Renamed"))

    detail = await reconciler.get(supplier.id)
    assert detail.name == "Acme Renamed"
    assert detail.identifiers == []
    assert detail.segment_ids == []


async def test_update_should_not_merge_with_previous_sets(
    session: AsyncSession, segments: dict[str, int]
) -> None:
    reconciler = AssociationReconciler(session)
    supplier = await reconciler.create(
        _input(identifiers=["12345678000195"], segment_ids=[segments["Food"]])
    )

    await reconciler.update(
        supplier.id,
        _input(identifiers=["11222333000181"], segment_ids=[segments["Pharmacy"]]),
    )

    detail = await reconciler.get(supplier.id)
    assert detail.identifiers == ["11.222.333/0001-81"]
    assert detail.segment_ids == [segments["Pharmacy"]]


async def test_update_should_be_idempotent(
    session: AsyncSession, segments: dict[str, int]
) -> None:
    reconciler = AssociationReconciler(session)
    supplier = await reconciler.create(_input())
    data = _input(identifiers=["12345678000195"], segment_ids=[segments["Food"], segments["Fashion"]])

    await reconciler.update(supplier.id, data)
    first = await reconciler.get(supplier.id)
    await reconciler.update(supplier.id, data)
    second = await reconciler.get(supplier.id)

    assert Counter(first.identifiers) == Counter(second.identifiers)
    assert Counter(first.segment_ids) == Counter(second.segment_ids)
    assert await _count(session, SupplierIdentifier) == 1
    assert await _count(session, SegmentLink) == 2


async def test_update_should_raise_not_found(session: AsyncSession) -> None:
    with pytest.raises(NotFoundError):
        await AssociationReconciler(session).update(12345, _input())


async def test_delete_should_cascade_associations(
    session: AsyncSession, segments: dict[str, int]
) -> None:
    reconciler = AssociationReconciler(session)
    supplier = await reconciler.create(
        _input(identifiers=["12345678000195"], segment_ids=[segments["Food"]])
    )
    supplier_id = supplier.id

    await reconciler.delete(supplier_id)

    assert await _count(session, Supplier) == 0
    assert await _count(session, SupplierIdentifier) == 0
    assert await _count(session, SegmentLink) == 0
    with pytest.raises(NotFoundError):
        await reconciler.get(supplier_id)


async def test_delete_should_raise_not_found(session: AsyncSession) -> None:
    with pytest.raises(NotFoundError):
        await AssociationReconciler(session).delete(4242)


@pytest.mark.parametrize("atomic", [True, False])
async def test_update_should_raise_not_found_when_supplier_vanishes_mid_write(
    session: AsyncSession, monkeypatch: pytest.MonkeyPatch, atomic: bool
) -> None:
    async def _exists(self, entity_id):
        return True

    monkeypatch.setattr(SupplierRepository, "exists", _exists)
    with pytest.raises(NotFoundError):
        await AssociationReconciler(session, atomic=atomic).update(
            4242, _input(identifiers=["12345678000195"])
        )

    assert await _count(session, SupplierIdentifier) == 0
    assert await _count(session, ReconcileIntent) == 0


async def test_atomic_update_failure_should_roll_back_everything(
    session: AsyncSession,
    session_factory: async_sessionmaker[AsyncSession],
    segments: dict[str, int],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    reconciler = AssociationReconciler(session, atomic=True)
    supplier = await reconciler.create(
        _input(identifiers=["12345678000195"], segment_ids=[segments["Food"]])
    )
    # The rollback expires every loaded row, the supplier included
    supplier_id = supplier.id
    monkeypatch.setattr(SegmentLinkRepository, "replace_for_supplier", _fail)

    with pytest.raises(StoreError) as exc:
        await reconciler.update(
            supplier_id, _input(name="Half Done", identifiers=["11222333000181"])
        )
    assert not isinstance(exc.value, PartialWriteError)
    assert exc.value.message == "disk I/O error"

    async with session_factory() as fresh:
        detail = await AssociationReconciler(fresh).get(supplier_id)
        assert detail.name == "Acme"
        assert detail.identifiers == ["12.345.678/0001-95"]
        assert detail.segment_ids == [segments["Food"]]
        assert await _count(fresh, ReconcileIntent) == 0


async def test_atomic_update_failure_should_log_driver_message(
    session: AsyncSession,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    reconciler = AssociationReconciler(session, atomic=True)
    supplier_id = (await reconciler.create(_input())).id
    monkeypatch.setattr(SupplierIdentifierRepository, "replace_for_supplier", _fail)

    with caplog.at_level(logging.ERROR, logger="supplier_directory.services.reconciler"):
        with pytest.raises(StoreError):
            await reconciler.update(supplier_id, _input(identifiers=["11222333000181"]))

    [record] = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert f"supplier {supplier_id} rolled back" in record.getMessage()
    assert "disk I/O error" in record.getMessage()


async def test_sequential_update_should_leave_no_intent_on_success(
    session: AsyncSession, segments: dict[str, int]
) -> None:
    reconciler = AssociationReconciler(session, atomic=False)
    supplier = await reconciler.create(_input(segment_ids=[segments["Food"]]))
    await reconciler.update(supplier.id, _input(identifiers=["12345678000195"]))

    detail = await reconciler.get(supplier.id)
    assert detail.identifiers == ["12.345.678/0001-95"]
    assert detail.segment_ids == []
    assert await reconciler.list_pending_intents() == []


async def test_sequential_update_failure_should_raise_partial_write(
    session: AsyncSession,
    session_factory: async_sessionmaker[AsyncSession],
    segments: dict[str, int],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    reconciler = AssociationReconciler(session, atomic=False)
    supplier = await reconciler.create(_input(segment_ids=[segments["Food"]]))
    supplier_id = supplier.id
    monkeypatch.setattr(SegmentLinkRepository, "replace_for_supplier", _fail)

    new_data = _input(
        name="Acme v2", identifiers=["11222333000181"], segment_ids=[segments["Pharmacy"]]
    )
    with pytest.raises(PartialWriteError) as exc:
        await reconciler.update(supplier_id, new_data)

    assert exc.value.code == "PARTIAL_WRITE"
    assert exc.value.supplier_id == supplier_id
    assert exc.value.completed_step == STEP_IDENTIFIERS
    assert exc.value.failed_step == STEP_SEGMENTS

    # Scalar row and identifiers committed, links still the old ones
    async with session_factory() as fresh:
        detail = await AssociationReconciler(fresh).get(supplier_id)
        assert detail.name == "Acme v2"
        assert detail.identifiers == ["11.222.333/0001-81"]
        assert detail.segment_ids == [segments["Food"]]

        intents = await AssociationReconciler(fresh).list_pending_intents()
        assert len(intents) == 1
        assert intents[0].id == exc.value.intent_id
        assert intents[0].supplier_id == supplier_id
        assert intents[0].completed_step == STEP_IDENTIFIERS

    monkeypatch.undo()
    async with session_factory() as repair:
        await AssociationReconciler(repair).replay_intent(exc.value.intent_id)
        detail = await AssociationReconciler(repair).get(supplier_id)
        assert detail.segment_ids == [segments["Pharmacy"]]
        assert await AssociationReconciler(repair).list_pending_intents() == []


async def test_sequential_commit_failure_between_steps_should_raise_partial_write(
    session: AsyncSession,
    session_factory: async_sessionmaker[AsyncSession],
    segments: dict[str, int],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    created = await AssociationReconciler(session, atomic=True).create(
        _input(identifiers=["12345678000195"], segment_ids=[segments["Food"]])
    )
    supplier_id = created.id
    real_commit = AsyncSession.commit
    commits = 0

    # Commits: 1 intent, 2 supplier step, 3 identifiers step
    async def commit_failing_third(self: AsyncSession) -> None:
        nonlocal commits
        commits += 1
        if commits == 3:
            raise store_failure("database is locked")
        await real_commit(self)

    monkeypatch.setattr(AsyncSession, "commit", commit_failing_third)
    with pytest.raises(PartialWriteError) as exc:
        await AssociationReconciler(session, atomic=False).update(
            supplier_id,
            _input(name="Acme v2", identifiers=["11222333000181"], segment_ids=[segments["Pharmacy"]]),
        )
    monkeypatch.undo()

    assert exc.value.supplier_id == supplier_id
    assert exc.value.completed_step == STEP_SUPPLIER
    assert exc.value.failed_step == STEP_IDENTIFIERS
    assert "database is locked" in exc.value.message

    async with session_factory() as fresh:
        detail = await AssociationReconciler(fresh).get(supplier_id)
        assert detail.name == "Acme v2"
        assert detail.identifiers == ["12.345.678/0001-95"]
        assert detail.segment_ids == [segments["Food"]]

        intents = await AssociationReconciler(fresh).list_pending_intents()
        assert [i.id for i in intents] == [exc.value.intent_id]
        assert intents[0].completed_step == STEP_SUPPLIER


async def test_sequential_create_failure_on_first_step_should_be_plain_store_error(
    session: AsyncSession, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(SupplierRepository, "create", _fail)
    with pytest.raises(StoreError) as exc:
        await AssociationReconciler(session, atomic=False).create(_input())

    assert not isinstance(exc.value, PartialWriteError)
    assert await _count(session, ReconcileIntent) == 0


async def test_replay_intent_should_raise_not_found(session: AsyncSession) -> None:
    with pytest.raises(NotFoundError):
        await AssociationReconciler(session).replay_intent(77)
