"""SQLAlchemy ORM model for in-flight sequential reconciliations.

A row is written before the first step of a non-atomic create/update and
removed after the last one. Rows that survive mark suppliers whose
association state may be inconsistent; replaying the payload repairs them.
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from supplier_directory.db.base import Base
from supplier_directory.domain.mixins import TimestampMixin


class ReconcileIntent(Base, TimestampMixin):
    __tablename__ = "reconcile_intents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # "create" | "update"
    operation: Mapped[str] = mapped_column(String(20), nullable=False)
    # Null until the supplier row of a create has been inserted
    supplier_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    payload: Mapped[Any] = mapped_column(JSON, nullable=False)
    completed_step: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
