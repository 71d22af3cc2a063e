"""Read-only mapping of the `supplier_view` database view.

The view joins each supplier with its identifiers and segment names,
aggregated into JSON arrays. It is created right after the tables on
Base.metadata and dropped before them; nothing ever writes to it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DDL, JSON, DateTime, Integer, String, event
from sqlalchemy.orm import Mapped, mapped_column

from supplier_directory.db.base import Base, ViewBase

VIEW_NAME = "supplier_view"

SQLITE_VIEW_SQL = f"""
CREATE VIEW IF NOT EXISTS {VIEW_NAME} AS
SELECT
    s.id AS id,
    s.name AS name,
    s.logo AS logo,
    s.created_at AS created_at,
    (SELECT json_group_array(i.identifier)
       FROM supplier_identifiers AS i
      WHERE i.supplier_id = s.id) AS identifiers,
    (SELECT json_group_array(g.name)
       FROM supplier_segments AS l
       JOIN segments AS g ON g.id = l.segment_id
      WHERE l.supplier_id = s.id) AS segment_names
FROM suppliers AS s
"""

POSTGRES_VIEW_SQL = f"""
CREATE OR REPLACE VIEW {VIEW_NAME} AS
SELECT
    s.id AS id,
    s.name AS name,
    s.logo AS logo,
    s.created_at AS created_at,
    COALESCE(
        (SELECT json_agg(i.identifier ORDER BY i.id)
           FROM supplier_identifiers AS i
          WHERE i.supplier_id = s.id),
        '[]'::json) AS identifiers,
    COALESCE(
        (SELECT json_agg(g.name ORDER BY g.name)
           FROM supplier_segments AS l
           JOIN segments AS g ON g.id = l.segment_id
          WHERE l.supplier_id = s.id),
        '[]'::json) AS segment_names
FROM suppliers AS s
"""

DROP_VIEW_SQL = f"DROP VIEW IF EXISTS {VIEW_NAME}"


class SupplierView(ViewBase):
    __tablename__ = VIEW_NAME

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    logo: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    # Raw aggregates; may carry null placeholders
    identifiers: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    segment_names: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)


event.listen(
    Base.metadata, "after_create", DDL(SQLITE_VIEW_SQL).execute_if(dialect="sqlite")
)
event.listen(
    Base.metadata, "after_create", DDL(POSTGRES_VIEW_SQL).execute_if(dialect="postgresql")
)
event.listen(Base.metadata, "before_drop", DDL(DROP_VIEW_SQL))
