"""Reconcile-intent router — inspect and repair interrupted sequential writes."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from supplier_directory.core.response import DataResponse
from supplier_directory.db.base import get_db
from supplier_directory.schemas.supplier import ReconcileIntentOut, SupplierOut
from supplier_directory.services.reconciler import AssociationReconciler

router = APIRouter(prefix="/reconcile-intents", tags=["Reconcile intents"])


@router.get("", response_model=DataResponse[list[ReconcileIntentOut]])
async def list_intents(session: AsyncSession = Depends(get_db)):
    """Writes that started but never finished; their suppliers may be inconsistent."""
    intents = await AssociationReconciler(session).list_pending_intents()
    return {"data": [ReconcileIntentOut.model_validate(i) for i in intents]}


@router.post("/{intent_id}/replay", response_model=DataResponse[Optional[SupplierOut]])
async def replay_intent(
    intent_id: int,
    session: AsyncSession = Depends(get_db),
):
    """Re-apply the intent's payload in one transaction and remove the intent."""
    supplier = await AssociationReconciler(session).replay_intent(intent_id)
    return {"data": SupplierOut.model_validate(supplier) if supplier is not None else None}
