"""Health check endpoints.

/health        - Basic health check
/health/live   - Liveness probe: is the process up?
/health/ready  - Readiness probe: can we serve traffic? (DB reachable?)

These are public endpoints - no auth required.
"""

from __future__ import annotations

from datetime import UTC, datetime

import structlog
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from perftrack.database import get_engine

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health() -> dict:
    """Plain health check for load balancers that probe a single path."""
    return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}


@router.get("/live")
async def liveness() -> dict:
    """Liveness probe - always returns 200 if the process is running."""
    return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}


@router.get("/ready")
async def readiness() -> JSONResponse:
    """Readiness probe - checks DB connectivity. Returns 503 when not ready."""
    try:
        engine = get_engine()
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        db_status = "ok"
    except (RuntimeError, SQLAlchemyError, OSError) as exc:
        log.warning("health.db_unreachable", error=str(exc))
        db_status = f"error: {exc}"

    is_ready = db_status == "ok"
    return JSONResponse(
        status_code=200 if is_ready else 503,
        content={
            "status": "ready" if is_ready else "not_ready",
            "database": db_status,
            "timestamp": datetime.now(UTC).isoformat(),
        },
    )
