"""CamelModel base for request/response bodies, plus the /health payload."""

from __future__ import annotations

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python; ORM rows validate directly."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


class HealthResponse(CamelModel):
    """Liveness plus the store dialect and the write mode the reconciler runs in."""

    status: str = "ok"
    app: str
    env: str
    database: str
    reconcile_mode: str
