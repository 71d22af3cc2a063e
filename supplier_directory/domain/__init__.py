"""Domain package — all ORM models are imported here so Alembic autogenerate detects them.

Folder intent:
  supplier.py          — Supplier plus its identifier and segment-link child rows
  segment.py           — Segment lookup table
  supplier_view.py     — Read-only denormalized view used for listing/search
  reconcile_intent.py  — Pending multi-step writes (sequential reconcile mode)
  mixins.py            — Shared TimestampMixin
"""

from supplier_directory.domain.reconcile_intent import ReconcileIntent
from supplier_directory.domain.segment import Segment
from supplier_directory.domain.supplier import SegmentLink, Supplier, SupplierIdentifier
from supplier_directory.domain.supplier_view import SupplierView

__all__ = [
    "ReconcileIntent",
    "Segment",
    "SegmentLink",
    "Supplier",
    "SupplierIdentifier",
    "SupplierView",
]
