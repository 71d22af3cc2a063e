"""Async SQLAlchemy engine, session factory, declarative bases, and FastAPI dependency."""


from collections.abc import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from supplier_directory.core.config import settings


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def configure_sqlite_connections(async_engine: AsyncEngine) -> None:
    """Per-connection SQLite setup.

    SQLite ignores ON DELETE clauses unless the foreign_keys pragma is set, and
    its built-in lower() only folds ASCII, which breaks ILIKE on accented names.
    """
    if async_engine.dialect.name != "sqlite":
        return

    @event.listens_for(async_engine.sync_engine, "connect")
    def _configure(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
        dbapi_connection.create_function("lower", 1, _unicode_lower)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
_engine_kwargs: dict = {
    "pool_pre_ping": True,
    "echo": settings.app_env == "development",
}

# SQLite (local dev) doesn't support connection pooling parameters
if settings.is_sqlite:
    _engine_kwargs["connect_args"] = {"check_same_thread": False}

engine = create_async_engine(settings.database_url, **_engine_kwargs)
configure_sqlite_connections(engine)

# ---------------------------------------------------------------------------
# Session factory
# ---------------------------------------------------------------------------
async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
    autocommit=False,
)

# ---------------------------------------------------------------------------
# Declarative bases
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """All writable ORM models inherit from this base."""


class ViewBase(DeclarativeBase):
    """Read-only models mapped onto database views.

    Kept on separate metadata so `create_all` never emits CREATE TABLE for them.
    """


async def init_models(target: AsyncEngine | None = None) -> None:
    """Create all tables (and the views hooked onto Base.metadata)."""
    import supplier_directory.domain  # noqa: F401

    async with (target or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# ---------------------------------------------------------------------------
# FastAPI dependency
# ---------------------------------------------------------------------------
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session; roll back on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """FastAPI dependency for code that opens its own sessions (e.g. websockets)."""
    return async_session_factory
