"""SQLAlchemy ORM models for suppliers and their association rows.

  - Supplier            — scalar row, integer id assigned by the store
  - SupplierIdentifier  — one tax-registration number, owned by one supplier
  - SegmentLink         — supplier <-> segment membership

Child rows cascade on supplier deletion at the database level. A segment
cannot be dropped while links point at it.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from supplier_directory.db.base import Base
from supplier_directory.domain.mixins import TimestampMixin


class Supplier(Base, TimestampMixin):
    __tablename__ = "suppliers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    logo: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)


class SupplierIdentifier(Base, TimestampMixin):
    __tablename__ = "supplier_identifiers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    supplier_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Canonical NN.NNN.NNN/NNNN-NN; duplicates across suppliers are allowed
    identifier: Mapped[str] = mapped_column(String(18), nullable=False)


class SegmentLink(Base, TimestampMixin):
    __tablename__ = "supplier_segments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    supplier_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    segment_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("segments.id", ondelete="RESTRICT"), nullable=False, index=True
    )
