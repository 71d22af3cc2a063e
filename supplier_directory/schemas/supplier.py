"""Supplier Pydantic schemas (command payloads, filters and response models)."""


from datetime import datetime

from pydantic import Field

from supplier_directory.schemas.common import CamelModel

class SupplierInput(CamelModel):
    """Full-replace payload for create and update.

    Only shapes are checked here; business validation runs in the reconciler
    so direct callers get the same errors as HTTP clients.
    """

    name: str
    logo: str | None = None
    identifiers: list[str] = Field(default_factory=list)
    segment_ids: list[int] = Field(default_factory=list)

class SupplierFilters(CamelModel):
    name: str | None = None
    identifier: str | None = None
    segment: str | None = None

    def normalized(self) -> "SupplierFilters":
        """Blank strings count as absent."""
        return SupplierFilters(
            name=(self.name or "").strip() or None,
            identifier=(self.identifier or "").strip() or None,
            segment=(self.segment or "").strip() or None,
        )

class SupplierOut(CamelModel):
    id: int
    name: str
    logo: str | None = None
    created_at: datetime

class SupplierDetailOut(SupplierOut):
    identifiers: list[str] = Field(default_factory=list)
    segment_ids: list[int] = Field(default_factory=list)

class SupplierViewOut(CamelModel):
    """One row of the directory listing."""

    id: int
    name: str
    logo: str | None = None
    created_at: datetime
    identifiers: list[str] = Field(default_factory=list)
    segment_names: list[str] = Field(default_factory=list)

class ReconcileIntentOut(CamelModel):
    id: int
    operation: str
    supplier_id: int | None = None
    completed_step: str | None = None
    payload: dict
    created_at: datetime
