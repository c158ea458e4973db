"""SQLAlchemy async adapters for the storage ports.

The session's transaction is owned by the caller (the FastAPI dependency
commits or rolls back). ``unit_of_work`` flushes on success and rolls the
session back on failure, so a failed pipeline leaves no partial writes.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from perftrack.engine.errors import DuplicateEventError, GoalNotFoundError, VersionConflictError
from perftrack.engine.types import (
    AchievementCategory,
    AchievementDefinition,
    EventSource,
    Goal,
    GoalCategory,
    GoalPriority,
    GoalStatus,
    HabitFrequency,
    ProgressEvent,
    UserAchievement,
)
from perftrack.models import (
    AchievementDefinitionRow,
    GoalRow,
    ProgressEventRow,
    UserAchievementRow,
)
from perftrack.stores.base import AchievementCatalog, GoalStore

log = structlog.get_logger(__name__)

# Columns written by put(); identity, ownership and creation time never change.
_MUTABLE_GOAL_FIELDS = (
    "title",
    "description",
    "specific",
    "measurable",
    "achievable",
    "relevant",
    "time_bound",
    "motivation_note",
    "category",
    "priority",
    "target_value",
    "target_unit",
    "current_value",
    "progress_percentage",
    "status",
    "is_habit",
    "habit_frequency",
    "current_streak",
    "best_streak",
    "last_checkin_unit",
    "timezone",
    "completion_date",
    "updated_at",
)


def _as_utc(value: datetime | None) -> datetime | None:
    """Drivers without timezone support (SQLite) hand back naive UTC values."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _goal_from_row(row: GoalRow) -> Goal:
    return Goal(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        description=row.description,
        specific=row.specific,
        measurable=row.measurable,
        achievable=row.achievable,
        relevant=row.relevant,
        time_bound=row.time_bound,
        motivation_note=row.motivation_note,
        category=GoalCategory(row.category),
        priority=GoalPriority(row.priority),
        target_value=row.target_value,
        target_unit=row.target_unit,
        current_value=row.current_value,
        progress_percentage=row.progress_percentage,
        status=GoalStatus(row.status),
        is_habit=row.is_habit,
        habit_frequency=HabitFrequency(row.habit_frequency) if row.habit_frequency else None,
        current_streak=row.current_streak,
        best_streak=row.best_streak,
        last_checkin_unit=row.last_checkin_unit,
        timezone=row.timezone,
        completion_date=_as_utc(row.completion_date),
        version=row.version,
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
    )


def _goal_values(goal: Goal) -> dict[str, Any]:
    values = {name: getattr(goal, name) for name in _MUTABLE_GOAL_FIELDS}
    values["category"] = str(goal.category)
    values["priority"] = str(goal.priority)
    values["status"] = str(goal.status)
    values["habit_frequency"] = str(goal.habit_frequency) if goal.habit_frequency else None
    return values


def _event_from_row(row: ProgressEventRow) -> ProgressEvent:
    return ProgressEvent(
        event_id=row.event_id,
        goal_id=row.goal_id,
        user_id=row.user_id,
        value=row.value,
        timestamp=_as_utc(row.timestamp),
        source=EventSource(row.source),
        note=row.note,
        recorded_at=_as_utc(row.recorded_at),
    )


def _achievement_from_row(row: UserAchievementRow) -> UserAchievement:
    return UserAchievement(
        id=row.id,
        user_id=row.user_id,
        definition_id=row.definition_id,
        progress=row.progress,
        earned=row.earned,
        earned_date=_as_utc(row.earned_date),
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
    )


def definition_from_row(row: AchievementDefinitionRow) -> AchievementDefinition:
    return AchievementDefinition(
        id=row.id,
        code=row.code,
        title=row.title,
        description=row.description,
        icon=row.icon,
        category=AchievementCategory(row.category),
        metric=row.metric,
        max_progress=row.max_progress,
        points=row.points,
        active=row.active,
    )


class SqlGoalStore(GoalStore):
    """GoalStore backed by an AsyncSession."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get(self, goal_id: uuid.UUID) -> Goal:
        stmt = (
            select(GoalRow)
            .where(GoalRow.id == goal_id)
            .execution_options(populate_existing=True)
        )
        result = await self._db.execute(stmt)
        row = result.scalar_one_or_none()
        if row is None:
            raise GoalNotFoundError(goal_id)
        return _goal_from_row(row)

    async def list_goals(
        self,
        user_id: uuid.UUID,
        status: GoalStatus | None = None,
    ) -> list[Goal]:
        stmt = select(GoalRow).where(GoalRow.user_id == user_id)
        if status is not None:
            stmt = stmt.where(GoalRow.status == str(status))
        stmt = stmt.order_by(GoalRow.created_at.desc()).execution_options(populate_existing=True)
        result = await self._db.execute(stmt)
        return [_goal_from_row(row) for row in result.scalars().all()]

    async def add(self, goal: Goal) -> Goal:
        row = GoalRow(
            id=goal.id,
            user_id=goal.user_id,
            version=goal.version,
            created_at=goal.created_at,
            **_goal_values(goal),
        )
        self._db.add(row)
        await self._db.flush()
        log.debug("sql_store.goal_added", goal_id=str(goal.id))
        return replace(goal)

    async def put(self, goal: Goal, expected_version: int) -> Goal:
        stmt = (
            update(GoalRow)
            .where(GoalRow.id == goal.id, GoalRow.version == expected_version)
            .values(**_goal_values(goal), version=expected_version + 1)
            .execution_options(synchronize_session=False)
        )
        result = await self._db.execute(stmt)
        if result.rowcount == 0:
            current = await self._db.execute(
                select(GoalRow.version).where(GoalRow.id == goal.id)
            )
            actual = current.scalar_one_or_none()
            if actual is None:
                raise GoalNotFoundError(goal.id)
            raise VersionConflictError(goal.id, expected_version, actual)
        return replace(goal, version=expected_version + 1)

    async def append_progress_event(self, event: ProgressEvent) -> None:
        row = ProgressEventRow(
            event_id=event.event_id,
            goal_id=event.goal_id,
            user_id=event.user_id,
            value=event.value,
            timestamp=event.timestamp,
            source=str(event.source),
            note=event.note,
            recorded_at=event.recorded_at,
        )
        self._db.add(row)
        try:
            await self._db.flush()
        except IntegrityError as exc:
            raise DuplicateEventError(event.event_id) from exc

    async def get_progress_event(self, event_id: str) -> ProgressEvent | None:
        result = await self._db.execute(
            select(ProgressEventRow).where(ProgressEventRow.event_id == event_id)
        )
        row = result.scalar_one_or_none()
        return _event_from_row(row) if row is not None else None

    async def list_progress_events(self, goal_id: uuid.UUID) -> list[ProgressEvent]:
        result = await self._db.execute(
            select(ProgressEventRow)
            .where(ProgressEventRow.goal_id == goal_id)
            .order_by(ProgressEventRow.timestamp.asc())
        )
        return [_event_from_row(row) for row in result.scalars().all()]

    async def list_user_achievements(self, user_id: uuid.UUID) -> list[UserAchievement]:
        result = await self._db.execute(
            select(UserAchievementRow).where(UserAchievementRow.user_id == user_id)
        )
        return [_achievement_from_row(row) for row in result.scalars().all()]

    async def get_user_achievement(
        self, user_id: uuid.UUID, definition_id: uuid.UUID
    ) -> UserAchievement | None:
        row = await self._find_user_achievement(user_id, definition_id)
        return _achievement_from_row(row) if row is not None else None

    async def put_user_achievement(self, achievement: UserAchievement) -> UserAchievement:
        row = await self._find_user_achievement(achievement.user_id, achievement.definition_id)
        if row is None:
            row = UserAchievementRow(
                id=achievement.id,
                user_id=achievement.user_id,
                definition_id=achievement.definition_id,
                created_at=achievement.created_at,
            )
            self._db.add(row)
        row.progress = achievement.progress
        row.earned = achievement.earned
        row.earned_date = achievement.earned_date
        row.updated_at = achievement.updated_at
        await self._db.flush()
        return replace(achievement, id=row.id)

    async def _find_user_achievement(
        self, user_id: uuid.UUID, definition_id: uuid.UUID
    ) -> UserAchievementRow | None:
        result = await self._db.execute(
            select(UserAchievementRow).where(
                UserAchievementRow.user_id == user_id,
                UserAchievementRow.definition_id == definition_id,
            )
        )
        return result.scalar_one_or_none()

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[None]:
        try:
            yield
            await self._db.flush()
        except Exception:
            await self._db.rollback()
            log.debug("sql_store.rolled_back")
            raise


class SqlAchievementCatalog(AchievementCatalog):
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def list_definitions(
        self,
        category: AchievementCategory | None = None,
    ) -> list[AchievementDefinition]:
        stmt = select(AchievementDefinitionRow).where(AchievementDefinitionRow.active.is_(True))
        if category is not None:
            stmt = stmt.where(AchievementDefinitionRow.category == str(category))
        stmt = stmt.order_by(AchievementDefinitionRow.category, AchievementDefinitionRow.code)
        result = await self._db.execute(stmt)
        return [definition_from_row(row) for row in result.scalars().all()]
