"""Supplier router — CRUD, directory listing and interactive search.

Pattern:
  1. Inject DB session via Depends
  2. Instantiate the service with the session
  3. Call service methods and wrap result in response envelope
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from supplier_directory.core.exceptions import AppException, ValidationError
from supplier_directory.core.pagination import PaginationParams
from supplier_directory.core.response import (
    DataResponse,
    ListResponse,
    SearchPage,
    error_body,
    page_meta,
    paginated,
)
from supplier_directory.db.base import get_db, get_session_factory
from supplier_directory.schemas.supplier import (
    SupplierDetailOut,
    SupplierFilters,
    SupplierInput,
    SupplierOut,
    SupplierViewOut,
)
from supplier_directory.services.directory_query import DirectoryQueryEngine
from supplier_directory.services.reconciler import AssociationReconciler
from supplier_directory.services.search_controller import (
    DebouncedSearchController,
    SearchResult,
    engine_query,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/suppliers", tags=["Suppliers"])


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.get("", response_model=ListResponse[SupplierViewOut])
async def list_suppliers(
    name: Optional[str] = Query(default=None, description="Substring of the supplier name"),
    identifier: Optional[str] = Query(default=None, description="Substring of any identifier"),
    segment: Optional[str] = Query(default=None, description="Exact segment name"),
    pagination: PaginationParams = Depends(),
    session: AsyncSession = Depends(get_db),
):
    """List suppliers with their identifiers and segment names (paginated, ordered by name)."""
    filters = SupplierFilters(name=name, identifier=identifier, segment=segment)
    items, total = await DirectoryQueryEngine(session).list(filters, pagination.page, pagination.size)
    return paginated(items, total, pagination.page, pagination.size)


@router.post("", response_model=DataResponse[SupplierOut], status_code=status.HTTP_201_CREATED)
async def create_supplier(
    body: SupplierInput,
    session: AsyncSession = Depends(get_db),
):
    """Create a supplier together with its identifiers and segment links."""
    supplier = await AssociationReconciler(session).create(body)
    return {"data": SupplierOut.model_validate(supplier)}


@router.get("/{supplier_id}", response_model=DataResponse[SupplierDetailOut])
async def get_supplier(
    supplier_id: int,
    session: AsyncSession = Depends(get_db),
):
    return {"data": await AssociationReconciler(session).get(supplier_id)}


@router.put("/{supplier_id}", response_model=DataResponse[SupplierOut])
async def update_supplier(
    supplier_id: int,
    body: SupplierInput,
    session: AsyncSession = Depends(get_db),
):
    """Replace the supplier's fields and both association sets."""
    supplier = await AssociationReconciler(session).update(supplier_id, body)
    return {"data": SupplierOut.model_validate(supplier)}


@router.delete("/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_supplier(
    supplier_id: int,
    session: AsyncSession = Depends(get_db),
):
    await AssociationReconciler(session).delete(supplier_id)


# ------------------------------------------------------------------
# Interactive search
# ------------------------------------------------------------------

def _result_message(result: SearchResult) -> dict[str, Any]:
    if result.error is not None:
        return error_body(result.error.code, result.error.message)
    page = SearchPage[SupplierViewOut](
        data=result.items,
        meta=page_meta(result.total, result.page, result.page_size),
        filters=result.filters.model_dump(by_alias=True),
    )
    return page.model_dump(by_alias=True, mode="json")


async def _dispatch(controller: DebouncedSearchController, message: dict[str, Any]) -> None:
    action = message.get("action")
    value = message.get("value")
    if action == "name":
        controller.type_name(str(value or ""))
    elif action == "identifier":
        controller.type_identifier(str(value or ""))
    elif action == "segment":
        await controller.select_segment(str(value) if value else None)
    elif action == "page":
        if not isinstance(value, int) or value < 0:
            raise ValidationError("page must be a non-negative integer")
        await controller.set_page(value)
    elif action == "pageSize":
        if not isinstance(value, int) or value < 1:
            raise ValidationError("pageSize must be a positive integer")
        await controller.set_page_size(value)
    elif action == "clear":
        await controller.clear()
    else:
        raise ValidationError(f"Unknown action '{action}'")


@router.websocket("/search")
async def search_suppliers(
    websocket: WebSocket,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    """Keystroke-level search. Text fields are debounced; everything else applies at once.

    Client messages: `{"action": "name"|"identifier"|"segment"|"page"|"pageSize"|"clear", "value": ...}`.
    Server messages: `{data, meta, filters}` or `{error}`.
    """
    await websocket.accept()

    async def send(result: SearchResult) -> None:
        await websocket.send_json(_result_message(result))

    controller = DebouncedSearchController(engine_query(session_factory), send)
    try:
        await controller.refresh()
        while True:
            message = await websocket.receive_json()
            try:
                await _dispatch(controller, message if isinstance(message, dict) else {})
            except AppException as exc:
                await websocket.send_json(error_body(exc.code, exc.message))
    except WebSocketDisconnect:
        logger.debug("Search websocket closed")
    finally:
        controller.close()
