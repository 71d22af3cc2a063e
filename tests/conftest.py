import asyncio
import os
import pathlib
from collections.abc import AsyncGenerator, Generator
from typing import Any

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("AUTO_CREATE_SCHEMA", "false")

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from supplier_directory.db.base import configure_sqlite_connections, get_db, get_session_factory, init_models
from supplier_directory.domain.segment import Segment
from supplier_directory.main import create_app


def _make_engine(path: pathlib.Path) -> AsyncEngine:
    # NullPool: every checkout opens a fresh connection on the current loop
    engine = create_async_engine(f"sqlite+aiosqlite:///{path}", poolclass=NullPool)
    configure_sqlite_connections(engine)
    return engine


def _make_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


def store_failure(message: str = "disk I/O error") -> OperationalError:
    return OperationalError("INSERT ...", {}, Exception(message))


@pytest.fixture
async def db_engine(tmp_path: pathlib.Path) -> AsyncGenerator[AsyncEngine, None]:
    engine = _make_engine(tmp_path / "test.db")
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return _make_factory(db_engine)


@pytest.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as s:
        yield s


@pytest.fixture
async def segments(session: AsyncSession) -> dict[str, int]:
    """Three committed segments, name -> id."""
    rows = [Segment(name=n) for n in ("Fashion", "Food", "Pharmacy")]
    session.add_all(rows)
    await session.commit()
    return {r.name: r.id for r in rows}


@pytest.fixture
def fastapi_app(tmp_path: pathlib.Path) -> Generator[FastAPI, None, None]:
    engine = _make_engine(tmp_path / "api.db")
    asyncio.run(init_models(engine))
    factory = _make_factory(engine)

    async def _get_db() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app = create_app()
    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: factory
    yield app
    app.dependency_overrides.clear()
    asyncio.run(engine.dispose())


@pytest.fixture
def api_client(fastapi_app: FastAPI) -> TestClient:
    return TestClient(fastapi_app)


@pytest.fixture
def supplier_payload() -> dict[str, Any]:
    return {
        "name": "Acme Distribuidora",
        "logo": "https://cdn.example.com/acme.png",
        "identifiers": ["12345678000195"],
        "segmentIds": [],
    }
