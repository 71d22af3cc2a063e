"""AssociationReconciler — supplier writes and association-set replacement.

A create or update touches three tables: the supplier row, its identifiers
and its segment links. Association sets are always replaced wholesale
(delete every row, insert the submitted set), so after a successful write
they equal the submission exactly, whatever was stored before.

Two write modes:
  atomic      — all steps share one transaction, committed once. A failure
                rolls everything back and surfaces as StoreError.
  sequential  — every step commits on its own. A ReconcileIntent row is
                committed first and removed after the last step; a failure
                after something was committed raises PartialWriteError and
                leaves the intent behind for replay_intent().
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from supplier_directory.core.config import settings
from supplier_directory.core.exceptions import (
    NotFoundError,
    PartialWriteError,
    StoreError,
    ValidationError,
)
from supplier_directory.domain.reconcile_intent import ReconcileIntent
from supplier_directory.domain.supplier import Supplier
from supplier_directory.repositories.reconcile_intent import ReconcileIntentRepository
from supplier_directory.repositories.segment import SegmentRepository
from supplier_directory.repositories.supplier import (
    SegmentLinkRepository,
    SupplierIdentifierRepository,
    SupplierRepository,
)
from supplier_directory.schemas.supplier import SupplierDetailOut, SupplierInput
from supplier_directory.services.errors import store_errors, store_message
from supplier_directory.services.validation import clean_supplier_input

logger = logging.getLogger(__name__)

STEP_SUPPLIER = "supplier"
STEP_IDENTIFIERS = "identifiers"
STEP_SEGMENTS = "segments"


@dataclass
class _WriteState:
    supplier_id: int | None = None
    supplier: Supplier | None = None


Step = tuple[str, Callable[[_WriteState], Awaitable[None]]]


class AssociationReconciler:
    def __init__(self, session: AsyncSession, *, atomic: bool | None = None):
        self._session = session
        self._atomic = settings.reconcile_atomic if atomic is None else atomic
        self._suppliers = SupplierRepository(session)
        self._identifiers = SupplierIdentifierRepository(session)
        self._links = SegmentLinkRepository(session)
        self._segments = SegmentRepository(session)
        self._intents = ReconcileIntentRepository(session)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get(self, supplier_id: int) -> SupplierDetailOut:
        """Scalar fields plus the current association sets (edit-form prefill)."""
        with store_errors(f"loading supplier {supplier_id}"):
            supplier = await self._suppliers.get_by_id(supplier_id)
            if supplier is None:
                raise NotFoundError("Supplier", supplier_id)
            identifiers = await self._identifiers.list_for_supplier(supplier_id)
            segment_ids = await self._links.list_for_supplier(supplier_id)
        return SupplierDetailOut(
            id=supplier.id,
            name=supplier.name,
            logo=supplier.logo,
            created_at=supplier.created_at,
            identifiers=identifiers,
            segment_ids=segment_ids,
        )

    async def list_pending_intents(self) -> list[ReconcileIntent]:
        with store_errors("listing reconcile intents"):
            return await self._intents.list_pending()

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def create(self, data: SupplierInput) -> Supplier:
        data = await self._validate(data)

        async def insert_supplier(state: _WriteState) -> None:
            state.supplier = await self._suppliers.create(name=data.name, logo=data.logo)
            state.supplier_id = state.supplier.id

        async def insert_identifiers(state: _WriteState) -> None:
            if data.identifiers:
                await self._identifiers.bulk_create(
                    [{"supplier_id": state.supplier_id, "identifier": v} for v in data.identifiers]
                )

        async def insert_segments(state: _WriteState) -> None:
            if data.segment_ids:
                await self._links.bulk_create(
                    [{"supplier_id": state.supplier_id, "segment_id": s} for s in data.segment_ids]
                )

        state = await self._run(
            "create",
            data,
            _WriteState(),
            [
                (STEP_SUPPLIER, insert_supplier),
                (STEP_IDENTIFIERS, insert_identifiers),
                (STEP_SEGMENTS, insert_segments),
            ],
        )
        logger.info(
            "Created supplier %s with %d identifier(s) and %d segment(s)",
            state.supplier_id, len(data.identifiers), len(data.segment_ids),
        )
        return state.supplier  # type: ignore[return-value]

    async def update(self, supplier_id: int, data: SupplierInput) -> Supplier:
        data = await self._validate(data)
        with store_errors(f"checking supplier {supplier_id}"):
            exists = await self._suppliers.exists(supplier_id)
        if not exists:
            raise NotFoundError("Supplier", supplier_id)

        state = await self._run(
            "update", data, _WriteState(supplier_id=supplier_id), self._replace_steps(data)
        )
        logger.info(
            "Updated supplier %s: %d identifier(s), %d segment(s)",
            supplier_id, len(data.identifiers), len(data.segment_ids),
        )
        return state.supplier  # type: ignore[return-value]

    async def delete(self, supplier_id: int) -> None:
        """Delete the supplier; identifiers and segment links cascade."""
        try:
            deleted = await self._suppliers.delete(supplier_id)
            if deleted:
                await self._intents.delete_where(supplier_id=supplier_id)
                await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error("Store failure while deleting supplier %s: %s", supplier_id, exc)
            raise StoreError(store_message(exc)) from exc
        if not deleted:
            raise NotFoundError("Supplier", supplier_id)
        logger.info("Deleted supplier %s", supplier_id)

    async def replay_intent(self, intent_id: int) -> Supplier | None:
        """Re-apply the payload of a leftover intent atomically and drop the intent."""
        with store_errors(f"loading reconcile intent {intent_id}"):
            intent = await self._intents.get_by_id(intent_id)
        if intent is None:
            raise NotFoundError("Reconcile intent", intent_id)
        supplier_id = intent.supplier_id
        data = await self._validate(SupplierInput.model_validate(intent.payload))

        if supplier_id is None:
            # The supplier row of a create never made it; nothing to repair but the intent.
            steps: list[Step] = []
        else:
            with store_errors(f"checking supplier {supplier_id}"):
                exists = await self._suppliers.exists(supplier_id)
            if not exists:
                raise NotFoundError("Supplier", supplier_id)
            steps = self._replace_steps(data)

        async def drop_intent(_: _WriteState) -> None:
            await self._intents.delete(intent_id)

        state = await self._apply_atomic(
            _WriteState(supplier_id=supplier_id), steps + [("intent", drop_intent)]
        )
        logger.info("Replayed reconcile intent %s for supplier %s", intent_id, supplier_id)
        return state.supplier

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _validate(self, data: SupplierInput) -> SupplierInput:
        data = clean_supplier_input(data)
        with store_errors("checking segment ids"):
            missing = await self._segments.find_missing_ids(data.segment_ids)
        if missing:
            raise ValidationError(
                "Unknown segment id(s): " + ", ".join(str(i) for i in missing)
            )
        return data

    def _replace_steps(self, data: SupplierInput) -> list[Step]:
        async def update_supplier(state: _WriteState) -> None:
            supplier = await self._suppliers.update(
                state.supplier_id, name=data.name, logo=data.logo
            )
            if supplier is None:
                # Deleted by someone else after the existence check
                raise NotFoundError("Supplier", state.supplier_id)
            state.supplier = supplier

        async def replace_identifiers(state: _WriteState) -> None:
            await self._identifiers.replace_for_supplier(state.supplier_id, data.identifiers)

        async def replace_segments(state: _WriteState) -> None:
            await self._links.replace_for_supplier(state.supplier_id, data.segment_ids)

        return [
            (STEP_SUPPLIER, update_supplier),
            (STEP_IDENTIFIERS, replace_identifiers),
            (STEP_SEGMENTS, replace_segments),
        ]

    async def _run(
        self, operation: str, data: SupplierInput, state: _WriteState, steps: list[Step]
    ) -> _WriteState:
        if self._atomic:
            return await self._apply_atomic(state, steps)
        return await self._apply_sequential(operation, data, state, steps)

    async def _apply_atomic(self, state: _WriteState, steps: list[Step]) -> _WriteState:
        try:
            for _, step in steps:
                await step(state)
            await self._session.commit()
        except NotFoundError:
            await self._session.rollback()
            raise
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error("Reconciliation of supplier %s rolled back: %s", state.supplier_id, exc)
            raise StoreError(store_message(exc)) from exc
        return state

    async def _apply_sequential(
        self, operation: str, data: SupplierInput, state: _WriteState, steps: list[Step]
    ) -> _WriteState:
        try:
            intent = await self._intents.create(
                operation=operation,
                supplier_id=state.supplier_id,
                payload=data.model_dump(),
            )
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error("Could not record %s intent: %s", operation, exc)
            raise StoreError(store_message(exc)) from exc
        # A rollback expires every loaded instance; only plain values are safe past this point
        intent_id = intent.id

        completed: str | None = None
        for name, step in steps:
            try:
                await step(state)
                await self._intents.update(
                    intent_id, supplier_id=state.supplier_id, completed_step=name
                )
                await self._session.commit()
            except NotFoundError:
                await self._session.rollback()
                if completed is None:
                    await self._discard_intent(intent_id)
                raise
            except SQLAlchemyError as exc:
                await self._session.rollback()
                if completed is None:
                    await self._discard_intent(intent_id)
                    logger.error(
                        "%s of supplier %s failed, nothing written: %s", operation, state.supplier_id, exc
                    )
                    raise StoreError(store_message(exc)) from exc
                logger.error(
                    "Partial %s of supplier %s: step '%s' failed after '%s'; intent %s kept: %s",
                    operation, state.supplier_id, name, completed, intent_id, exc,
                )
                raise PartialWriteError(
                    store_message(exc),
                    supplier_id=state.supplier_id,
                    completed_step=completed,
                    failed_step=name,
                    intent_id=intent_id,
                ) from exc
            completed = name

        with store_errors(f"clearing intent {intent_id}"):
            await self._intents.delete(intent_id)
            await self._session.commit()
        return state

    async def _discard_intent(self, intent_id: int) -> None:
        try:
            await self._intents.delete(intent_id)
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error("Could not discard reconcile intent %s: %s", intent_id, exc)
