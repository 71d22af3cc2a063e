"""Translation of driver failures into StoreError."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from supplier_directory.core.exceptions import StoreError

logger = logging.getLogger(__name__)


def store_message(exc: SQLAlchemyError) -> str:
    """The underlying driver message, without SQLAlchemy's statement dump."""
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


@contextmanager
def store_errors(action: str) -> Iterator[None]:
    """Re-raise any SQLAlchemyError raised inside the block as StoreError."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Store failure while %s: %s", action, store_message(exc))
        raise StoreError(store_message(exc)) from exc
