"""JSON envelopes shared by every router.

HTTP endpoints answer `{data}` or `{data, meta}`; the search websocket pushes
`{data, meta, filters}`. Failures on either channel use `{error: {code, message}}`.
"""


import math
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from supplier_directory.core.pagination import PageMeta

T = TypeVar("T")

_ENVELOPE_CONFIG = {
    "populate_by_name": True,
    "alias_generator": to_camel,
}


class DataResponse(BaseModel, Generic[T]):
    data: T

    model_config = _ENVELOPE_CONFIG


class ListResponse(BaseModel, Generic[T]):
    """One page of rows; `meta.total` counts the whole filtered set, not the page."""

    data: list[T]
    meta: PageMeta

    model_config = _ENVELOPE_CONFIG


class SearchPage(ListResponse[T], Generic[T]):
    """A page pushed over the search websocket, echoing the filters it was computed with."""

    filters: dict[str, Any]


class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    error: ErrorDetail


def page_meta(total: int, page: int, size: int) -> PageMeta:
    return PageMeta(total=total, page=page, size=size, pages=math.ceil(total / size) if size else 0)


def paginated(items: list, total: int, page: int, size: int) -> dict:
    """Build the `{data, meta}` dict validated by ListResponse."""
    return {"data": items, "meta": page_meta(total, page, size).model_dump()}


def error_body(code: str, message: str) -> dict:
    return ErrorResponse(error=ErrorDetail(code=code, message=message)).model_dump()
