"""
Async SQLAlchemy wiring for the tracker's four tables.

Request handlers get a session from ``get_db_session``; the dependency owns
the transaction (commit on success, rollback on error). Inside a request the
goal store's ``unit_of_work`` only flushes, or rolls the session back when the
progress pipeline fails part-way.

PostgreSQL (asyncpg) is the production target. SQLite (aiosqlite) is
supported for tests and local experiments; an in-memory SQLite URL shares one
connection so every session sees the same schema.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool, StaticPool

from perftrack.config import Settings, get_settings

log = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base for goals, progress events and achievements.

    Alembic's env.py imports ``perftrack.models`` so every table is
    registered on this metadata before autogenerate runs.
    """


def _engine_kwargs(url: str, *, for_test: bool) -> dict[str, Any]:
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if parsed.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        return kwargs
    if for_test:
        return {"poolclass": NullPool}
    return {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }


def build_engine(settings: Settings, *, for_test: bool = False) -> AsyncEngine:
    """Create an async engine with pool options suited to the dialect."""
    return create_async_engine(
        settings.database_url,
        echo=settings.db_echo_sql,
        **_engine_kwargs(settings.database_url, for_test=for_test),
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: stores convert rows to records after commit
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_db(settings: Settings | None = None, *, for_test: bool = False) -> None:
    """Create the engine and session factory. Called from the app lifespan."""
    global _engine, _session_factory
    cfg = settings or get_settings()
    _engine = build_engine(cfg, for_test=for_test)
    _session_factory = build_session_factory(_engine)
    log.info("database.initialized", url=cfg.database_url.split("@")[-1])


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables directly from metadata (tests and local SQLite only).

    Deployed databases are migrated with Alembic instead.
    """
    import perftrack.models  # noqa: F401 - registers tables with Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose the engine and release all connections."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        log.info("database.closed")
    _engine = None
    _session_factory = None


def get_engine() -> AsyncEngine:
    """Return the initialized engine (raises if not initialized)."""
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _engine


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """One transaction: commit when the block exits cleanly, else roll back."""
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    async with _session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            log.debug("database.session_rolled_back")
            raise


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: a request-scoped ``session_scope``."""
    async with session_scope() as session:
        yield session
