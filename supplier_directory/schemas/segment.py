"""Segment Pydantic schemas."""


from datetime import datetime

from supplier_directory.schemas.common import CamelModel

class SegmentInput(CamelModel):
    name: str

class SegmentOut(CamelModel):
    id: int
    name: str
    created_at: datetime
