"""Supplier Directory API — FastAPI application factory."""


import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from supplier_directory.core.config import settings
from supplier_directory.core.exceptions import register_exception_handlers
from supplier_directory.db.base import engine, init_models
from supplier_directory.schemas.common import HealthResponse

# v1 routers
from supplier_directory.routers.v1.reconcile_intents import router as intents_v1_router
from supplier_directory.routers.v1.segments import router as segments_v1_router
from supplier_directory.routers.v1.suppliers import router as suppliers_v1_router

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    """Set up structured logging for the application."""
    level = logging.DEBUG if settings.app_env == "development" else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    if settings.auto_create_schema:
        logger.info("Creating schema on %s", engine.url.render_as_string(hide_password=True))
        await init_models()
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    _configure_logging()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url="/docs" if settings.app_env == "development" else None,
        redoc_url="/redoc" if settings.app_env == "development" else None,
        lifespan=_lifespan,
    )

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # --- Global exception handlers ---
    register_exception_handlers(app)

    # --- v1 API routes (/api/v1/*) ---
    app.include_router(suppliers_v1_router, prefix="/api/v1")
    app.include_router(segments_v1_router, prefix="/api/v1")
    app.include_router(intents_v1_router, prefix="/api/v1")

    # --- Health check ---
    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health():
        return HealthResponse(
            app=settings.app_name,
            env=settings.app_env,
            database=engine.dialect.name,
            reconcile_mode="atomic" if settings.reconcile_atomic else "sequential",
        )

    return app


app = create_app()
