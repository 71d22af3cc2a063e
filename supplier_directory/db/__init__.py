"""Database package — async SQLAlchemy engine, session factory, Base."""
from supplier_directory.db.base import (
    Base,
    ViewBase,
    async_session_factory,
    engine,
    get_db,
    get_session_factory,
    init_models,
)

__all__ = [
    "Base",
    "ViewBase",
    "async_session_factory",
    "engine",
    "get_db",
    "get_session_factory",
    "init_models",
]
