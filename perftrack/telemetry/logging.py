"""structlog setup for the tracker.

Every entry is an event name in dotted form (``progress_engine.applied``)
plus keyword fields. Request-scoped fields (request_id, user_id) live in
structlog's contextvars and are merged into each entry:

    {"event": "progress_engine.applied", "level": "info",
     "logger": "perftrack.services.progress_engine",
     "timestamp": "2026-02-17T10:30:45.123456Z",
     "request_id": "req_3f2a9c0d1e4b5a67", "user_id": "...", "goal_id": "..."}

Development gets a coloured console renderer with rich tracebacks; production
gets one JSON object per line on stdout.
"""

from __future__ import annotations

import logging
import re
import sys
import uuid
from typing import Any

import structlog
from structlog.types import Processor

REQUEST_ID_HEADER = b"x-request-id"

# Inbound ids are echoed into logs and headers, so only accept short tokens
_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{8,64}$")

_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine.Engine", "aiosqlite")


def _renderer(json_logs: bool) -> list[Processor]:
    if json_logs:
        return [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [
        structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.RichTracebackFormatter(),
        )
    ]


def configure_logging(*, json_logs: bool = False, log_level: str = "INFO") -> None:
    """Route structlog through stdlib logging and pick a renderer.

    Args:
        json_logs: One JSON object per line (production) instead of console output
        log_level: Root level name, e.g. "DEBUG" or "WARNING"
    """
    level = logging.getLevelName(log_level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            *_renderer(json_logs),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _request_id_from(scope: dict[str, Any]) -> str:
    for key, value in scope.get("headers", []):
        if key == REQUEST_ID_HEADER:
            candidate = value.decode("latin-1")
            if _SAFE_REQUEST_ID.match(candidate):
                return candidate
            break
    return f"req_{uuid.uuid4().hex[:16]}"


class RequestIdMiddleware:
    """ASGI middleware tagging each HTTP request with a request id.

    A well-formed ``x-request-id`` from the caller is reused, otherwise a
    ``req_``-prefixed id is generated. The id is bound into the log context
    for the duration of the request and returned in the response header.
    """

    def __init__(self, app: Any) -> None:
        self.app = app

    async def __call__(self, scope: dict[str, Any], receive: Any, send: Any) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = _request_id_from(scope)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=scope.get("method"),
            path=scope.get("path"),
        )

        async def send_with_request_id(message: dict[str, Any]) -> None:
            if message["type"] == "http.response.start":
                message["headers"] = [
                    *message.get("headers", []),
                    (REQUEST_ID_HEADER, request_id.encode()),
                ]
            await send(message)

        await self.app(scope, receive, send_with_request_id)


def bind_user_context(user_id: str | uuid.UUID) -> None:
    """Attach the authenticated user's id to subsequent log entries."""
    structlog.contextvars.bind_contextvars(user_id=str(user_id))


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
