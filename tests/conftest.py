"""
Shared test fixtures for pytest.

Provides common stores and test data for all test modules:
- fake_settings: Test environment configuration
- store / catalog: In-memory storage adapters seeded with the default catalog
- achievement_service / goal_service / progress_engine: Services over them
- sql_session: Real async session on in-memory SQLite (schema via create_all)
- test_app / client: FastAPI app with the in-memory stores wired in
- auth_headers / other_auth_headers: Bearer headers for two distinct users
- make_token: Helper to create test JWT tokens
- make_goal: Factory for engine Goal records
"""

import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, AsyncGenerator

import httpx
import jwt
import pytest
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession

from perftrack.config import Environment, Settings, get_settings
from perftrack.database import build_engine, build_session_factory, create_schema
from perftrack.engine.types import Goal, HabitFrequency
from perftrack.services.achievement_service import AchievementService
from perftrack.services.catalog import DEFAULT_DEFINITIONS
from perftrack.services.goal_service import GoalService
from perftrack.services.progress_engine import ProgressEngine
from perftrack.stores.memory import MemoryAchievementCatalog, MemoryGoalStore


# ------------------------------------------------------------------ #
# Session-scoped: clear settings cache between test sessions
# ------------------------------------------------------------------ #

@pytest.fixture(autouse=True, scope="session")
def _clear_settings_cache():
    """Clear the lru_cache on get_settings so test overrides take effect."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ------------------------------------------------------------------ #
# Constants for Test JWTs
# ------------------------------------------------------------------ #

TEST_JWT_SECRET = "test-jwt-secret"
TEST_AUDIENCE = "performance-tracker-api"


def make_token(
    sub: str,
    tz: str | None = None,
    audience: str = TEST_AUDIENCE,
    secret: str = TEST_JWT_SECRET,
    expires_in: int = 3600,
) -> str:
    """Create a test JWT token using HS256.

    Args:
        sub: Subject claim (the user's UUID as a string)
        tz: Optional IANA timezone claim
        audience: Audience claim
        secret: Signing secret
        expires_in: Seconds until expiry (negative for an expired token)

    Returns:
        Encoded JWT token string
    """
    now = int(datetime.now(timezone.utc).timestamp())
    payload: dict[str, Any] = {
        "sub": sub,
        "aud": audience,
        "iat": now,
        "exp": now + expires_in,
    }
    if tz is not None:
        payload["tz"] = tz
    return jwt.encode(payload, secret, algorithm="HS256")


# ------------------------------------------------------------------ #
# Settings
# ------------------------------------------------------------------ #

@pytest.fixture
def fake_settings() -> Settings:
    """Test environment settings with safe defaults."""
    return Settings(
        environment=Environment.TEST,
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret=TEST_JWT_SECRET,
        jwt_audience=TEST_AUDIENCE,
        default_timezone="UTC",
        seed_achievements_on_startup=False,
        db_echo_sql=False,
    )


# ------------------------------------------------------------------ #
# Identity Fixtures
# ------------------------------------------------------------------ #

@pytest.fixture
def user_id() -> uuid.UUID:
    """Fixed user UUID for consistent testing."""
    return uuid.UUID("aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa")


@pytest.fixture
def other_user_id() -> uuid.UUID:
    return uuid.UUID("bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb")


@pytest.fixture
def auth_headers(user_id: uuid.UUID) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(str(user_id))}"}


@pytest.fixture
def other_auth_headers(other_user_id: uuid.UUID) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(str(other_user_id))}"}


# ------------------------------------------------------------------ #
# Engine Record Factory
# ------------------------------------------------------------------ #

@pytest.fixture
def make_goal(user_id: uuid.UUID) -> Callable[..., Goal]:
    """Build a Goal with sensible SMART defaults; keyword args override."""

    def _make(**overrides: Any) -> Goal:
        fields: dict[str, Any] = {
            "user_id": user_id,
            "title": "Run 200 km",
            "specific": "Run outdoors",
            "measurable": "Total kilometres logged",
            "achievable": "About 15 km per week",
            "relevant": "Marathon preparation",
            "target_value": 200.0,
            "target_unit": "km",
        }
        fields.update(overrides)
        return Goal(**fields)

    return _make


@pytest.fixture
def make_habit(make_goal: Callable[..., Goal]) -> Callable[..., Goal]:
    def _make(**overrides: Any) -> Goal:
        fields: dict[str, Any] = {
            "title": "Stretch every day",
            "target_value": 7.0,
            "target_unit": "days",
            "is_habit": True,
            "habit_frequency": HabitFrequency.DAILY,
            "timezone": "UTC",
        }
        fields.update(overrides)
        return make_goal(**fields)

    return _make


# ------------------------------------------------------------------ #
# In-Memory Stores and Services
# ------------------------------------------------------------------ #

@pytest.fixture
def store() -> MemoryGoalStore:
    return MemoryGoalStore()


@pytest.fixture
def catalog() -> MemoryAchievementCatalog:
    return MemoryAchievementCatalog(DEFAULT_DEFINITIONS)


@pytest.fixture
def achievement_service(
    store: MemoryGoalStore, catalog: MemoryAchievementCatalog
) -> AchievementService:
    return AchievementService(store, catalog)


@pytest.fixture
def goal_service(store: MemoryGoalStore, achievement_service: AchievementService) -> GoalService:
    return GoalService(store, achievement_service, default_timezone="UTC")


@pytest.fixture
def progress_engine(
    store: MemoryGoalStore, achievement_service: AchievementService
) -> ProgressEngine:
    return ProgressEngine(store, achievement_service, default_timezone="UTC")


# ------------------------------------------------------------------ #
# SQL Session (in-memory SQLite)
# ------------------------------------------------------------------ #

@pytest.fixture
async def sql_session(fake_settings: Settings) -> AsyncGenerator[AsyncSession, None]:
    """Real async session against a fresh in-memory SQLite database.

    The engine built for an in-memory URL keeps one shared connection,
    so the schema created here is visible to the session.
    """
    engine = build_engine(fake_settings, for_test=True)
    await create_schema(engine)

    async with build_session_factory(engine)() as session:
        yield session

    await engine.dispose()


# ------------------------------------------------------------------ #
# App & HTTP Client Fixtures
# ------------------------------------------------------------------ #

@pytest.fixture
def test_app(
    fake_settings: Settings,
    store: MemoryGoalStore,
    catalog: MemoryAchievementCatalog,
) -> FastAPI:
    """Create FastAPI test app instance with test settings.

    The SQL-backed store dependencies are replaced with the in-memory
    adapters, so no database is required. The lifespan is not run by
    ASGITransport, so nothing connects at startup either.
    """
    from perftrack.api.deps import get_achievement_catalog, get_goal_store
    from perftrack.main import create_app

    get_settings.cache_clear()

    app = create_app()
    app.dependency_overrides[get_settings] = lambda: fake_settings
    app.dependency_overrides[get_goal_store] = lambda: store
    app.dependency_overrides[get_achievement_catalog] = lambda: catalog
    return app


@pytest.fixture
async def client(test_app: FastAPI) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Async HTTP client for testing the FastAPI application.

    Uses httpx.AsyncClient with ASGITransport to test the app without
    spinning up a real HTTP server.
    """
    transport = httpx.ASGITransport(app=test_app)  # type: ignore[arg-type]
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://testserver",
    ) as ac:
        yield ac
