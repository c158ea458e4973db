"""Dependency wiring for the goal and achievement routers.

Routers depend on ``get_goal_store`` / ``get_achievement_catalog`` rather than
on the session directly, so tests can swap in the in-memory adapters with
``app.dependency_overrides``.
"""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from perftrack.config import Settings, get_settings
from perftrack.database import get_db_session
from perftrack.services.achievement_service import AchievementService
from perftrack.services.goal_service import GoalService
from perftrack.services.progress_engine import ProgressEngine
from perftrack.stores.base import AchievementCatalog, GoalStore
from perftrack.stores.sql import SqlAchievementCatalog, SqlGoalStore


async def get_goal_store(db: AsyncSession = Depends(get_db_session)) -> GoalStore:
    return SqlGoalStore(db)


async def get_achievement_catalog(
    db: AsyncSession = Depends(get_db_session),
) -> AchievementCatalog:
    return SqlAchievementCatalog(db)


def get_achievement_service(
    store: GoalStore = Depends(get_goal_store),
    catalog: AchievementCatalog = Depends(get_achievement_catalog),
) -> AchievementService:
    return AchievementService(store, catalog)


def get_goal_service(
    store: GoalStore = Depends(get_goal_store),
    achievements: AchievementService = Depends(get_achievement_service),
    settings: Settings = Depends(get_settings),
) -> GoalService:
    return GoalService(store, achievements, default_timezone=settings.default_timezone)


def get_progress_engine(
    store: GoalStore = Depends(get_goal_store),
    achievements: AchievementService = Depends(get_achievement_service),
    settings: Settings = Depends(get_settings),
) -> ProgressEngine:
    return ProgressEngine(store, achievements, default_timezone=settings.default_timezone)
