"""FastAPI application for the performance tracker.

Run with ``uvicorn perftrack.main:app``. Startup configures logging, opens
the database engine and, unless disabled, inserts any missing default
achievement definitions. Shutdown disposes the engine.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from perftrack import __version__
from perftrack.api.router import api_v1_router, public_router
from perftrack.config import Settings, get_settings
from perftrack.database import close_db, init_db, session_scope
from perftrack.services.catalog import seed_achievement_definitions
from perftrack.telemetry.logging import RequestIdMiddleware, configure_logging

log = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging(
        json_logs=settings.use_json_logs,
        log_level="DEBUG" if settings.debug else "INFO",
    )
    log.info(
        "app.starting",
        environment=str(settings.environment),
        version=__version__,
        db=settings.database_url.split("@")[-1],
    )

    init_db(settings)
    if settings.seed_achievements_on_startup:
        async with session_scope() as session:
            inserted = await seed_achievement_definitions(session)
        log.info("app.achievements_seeded", inserted=inserted)

    try:
        yield
    finally:
        await close_db()
        log.info("app.shutdown")


def _install_middleware(app: FastAPI, settings: Settings) -> None:
    # Starlette runs the last-added middleware first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_dev else settings.cors_allowed_origins,
        allow_credentials=settings.is_prod,
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type", "X-Request-Id"],
        expose_headers=["X-Request-Id"],
    )
    app.add_middleware(RequestIdMiddleware)


async def _unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
    log.error(
        "app.unhandled_exception",
        method=request.method,
        path=request.url.path,
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app() -> FastAPI:
    settings = get_settings()
    docs_enabled = settings.is_dev

    app = FastAPI(
        title="Performance Tracker",
        description="SMART goals, habit streaks, automatic completion and achievements.",
        version=__version__,
        docs_url="/docs" if docs_enabled else None,
        redoc_url=None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )
    _install_middleware(app, settings)
    app.add_exception_handler(Exception, _unhandled_exception)

    app.include_router(public_router)
    app.include_router(api_v1_router)
    return app


app = create_app()
