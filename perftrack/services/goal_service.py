"""Goal service: creation, listing, explicit lifecycle actions and summary.

Progress itself is recorded only through ``ProgressEngine``. The actions
here are the user-driven transitions the engine never performs::

    active   -> paused      pause()
    paused   -> active      resume()
    *        -> abandoned   abandon()
    completed -> active     reopen()

``completion_date`` survives a reopen; it is set once and never rewritten.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, replace
from datetime import UTC, date, datetime
from numbers import Real

import structlog

from perftrack.engine.errors import GoalNotFoundError, GoalValidationError
from perftrack.engine.streaks import resolve_timezone
from perftrack.engine.types import (
    Goal,
    GoalCategory,
    GoalPriority,
    GoalStatus,
    HabitFrequency,
)
from perftrack.services.achievement_service import AchievementService
from perftrack.stores.base import GoalStore

log = structlog.get_logger(__name__)

_REQUIRED_SMART_FIELDS = ("title", "specific", "measurable", "achievable", "relevant")


@dataclass(frozen=True)
class GoalSummary:
    total: int
    completed_count: int
    active_count: int
    best_streak_across_goals: int
    total_achievement_points: int
    achievements_earned: int
    achievements_in_progress: int


@dataclass(frozen=True)
class NewGoal:
    """User input for a new goal, before validation."""

    title: str
    specific: str
    measurable: str
    achievable: str
    relevant: str
    target_value: float
    target_unit: str = ""
    description: str = ""
    time_bound: date | None = None
    motivation_note: str = ""
    category: GoalCategory | str = GoalCategory.PERFORMANCE
    priority: GoalPriority | str = GoalPriority.MEDIUM
    is_habit: bool = False
    habit_frequency: HabitFrequency | str | None = None
    timezone: str | None = None


def _parse_enum(enum_cls: type, value: object, field: str):  # noqa: ANN202
    try:
        return enum_cls(value)
    except ValueError as exc:
        allowed = ", ".join(m.value for m in enum_cls)
        raise GoalValidationError(
            f"{field} must be one of: {allowed} (got {value!r})", field=field
        ) from exc


class GoalService:
    """Service for managing goals outside of progress updates."""

    def __init__(
        self,
        store: GoalStore,
        achievements: AchievementService,
        *,
        default_timezone: str = "UTC",
    ) -> None:
        self._store = store
        self._achievements = achievements
        self._default_timezone = default_timezone

    async def create_goal(self, user_id: uuid.UUID, new_goal: NewGoal) -> Goal:
        """Validate and persist a new active goal.

        Raises:
            GoalValidationError: missing SMART fields, negative or non-finite
                target, unknown enum value, or a habit without a frequency
        """
        goal = self._build_goal(user_id, new_goal)
        async with self._store.unit_of_work():
            saved = await self._store.add(goal)

        log.info(
            "goal_service.create_goal",
            user_id=str(user_id),
            goal_id=str(saved.id),
            is_habit=saved.is_habit,
        )
        return saved

    async def get_goal(self, goal_id: uuid.UUID, user_id: uuid.UUID) -> Goal:
        goal = await self._store.get(goal_id)
        if goal.user_id != user_id:
            raise GoalNotFoundError(goal_id)
        return goal

    async def list_goals(
        self,
        user_id: uuid.UUID,
        status: GoalStatus | None = None,
    ) -> list[Goal]:
        goals = await self._store.list_goals(user_id, status=status)
        log.debug(
            "goal_service.list_goals",
            user_id=str(user_id),
            status=str(status) if status else None,
            count=len(goals),
        )
        return goals

    async def pause(
        self, goal_id: uuid.UUID, user_id: uuid.UUID, expected_version: int | None = None
    ) -> Goal:
        return await self._transition(
            goal_id, user_id, {GoalStatus.ACTIVE}, GoalStatus.PAUSED, expected_version
        )

    async def resume(
        self, goal_id: uuid.UUID, user_id: uuid.UUID, expected_version: int | None = None
    ) -> Goal:
        return await self._transition(
            goal_id, user_id, {GoalStatus.PAUSED}, GoalStatus.ACTIVE, expected_version
        )

    async def abandon(
        self, goal_id: uuid.UUID, user_id: uuid.UUID, expected_version: int | None = None
    ) -> Goal:
        return await self._transition(
            goal_id,
            user_id,
            {GoalStatus.ACTIVE, GoalStatus.PAUSED, GoalStatus.COMPLETED},
            GoalStatus.ABANDONED,
            expected_version,
        )

    async def reopen(
        self, goal_id: uuid.UUID, user_id: uuid.UUID, expected_version: int | None = None
    ) -> Goal:
        return await self._transition(
            goal_id, user_id, {GoalStatus.COMPLETED}, GoalStatus.ACTIVE, expected_version
        )

    async def get_goal_summary(self, user_id: uuid.UUID) -> GoalSummary:
        """Dashboard totals for a user."""
        goals = await self._store.list_goals(user_id)
        statuses = await self._achievements.list_achievements(user_id)

        summary = GoalSummary(
            total=len(goals),
            completed_count=sum(1 for g in goals if g.status == GoalStatus.COMPLETED),
            active_count=sum(1 for g in goals if g.status == GoalStatus.ACTIVE),
            best_streak_across_goals=max((g.best_streak for g in goals), default=0),
            total_achievement_points=sum(s.definition.points for s in statuses if s.earned),
            achievements_earned=sum(1 for s in statuses if s.earned),
            achievements_in_progress=sum(1 for s in statuses if not s.earned and s.progress > 0),
        )
        log.debug("goal_service.summary", user_id=str(user_id), total=summary.total)
        return summary

    async def _transition(
        self,
        goal_id: uuid.UUID,
        user_id: uuid.UUID,
        allowed_from: set[GoalStatus],
        target: GoalStatus,
        expected_version: int | None,
    ) -> Goal:
        async with self._store.unit_of_work():
            goal = await self.get_goal(goal_id, user_id)
            if goal.status not in allowed_from:
                raise GoalValidationError(
                    f"Cannot change goal from {goal.status} to {target}", field="status"
                )
            version = expected_version if expected_version is not None else goal.version
            saved = await self._store.put(
                replace(goal, status=target, updated_at=datetime.now(UTC)),
                expected_version=version,
            )

        log.info(
            "goal_service.status_changed",
            goal_id=str(goal_id),
            from_status=str(goal.status),
            to_status=str(target),
        )
        return saved

    def _build_goal(self, user_id: uuid.UUID, new_goal: NewGoal) -> Goal:
        for name in _REQUIRED_SMART_FIELDS:
            value = getattr(new_goal, name)
            if not isinstance(value, str) or not value.strip():
                raise GoalValidationError(f"{name} is required", field=name)

        target = new_goal.target_value
        if isinstance(target, bool) or not isinstance(target, Real) or not math.isfinite(target):
            raise GoalValidationError("target_value must be a finite number", field="target_value")
        if target < 0:
            raise GoalValidationError("target_value must not be negative", field="target_value")

        category = _parse_enum(GoalCategory, new_goal.category, "category")
        priority = _parse_enum(GoalPriority, new_goal.priority, "priority")

        frequency = None
        if new_goal.is_habit:
            if new_goal.habit_frequency is None:
                raise GoalValidationError(
                    "habit_frequency is required for habit goals", field="habit_frequency"
                )
            frequency = _parse_enum(HabitFrequency, new_goal.habit_frequency, "habit_frequency")

        if new_goal.timezone is not None:
            resolve_timezone(new_goal.timezone, self._default_timezone)

        return Goal(
            user_id=user_id,
            title=new_goal.title.strip(),
            description=new_goal.description,
            specific=new_goal.specific.strip(),
            measurable=new_goal.measurable.strip(),
            achievable=new_goal.achievable.strip(),
            relevant=new_goal.relevant.strip(),
            time_bound=new_goal.time_bound,
            motivation_note=new_goal.motivation_note,
            category=category,
            priority=priority,
            target_value=float(target),
            target_unit=new_goal.target_unit,
            is_habit=new_goal.is_habit,
            habit_frequency=frequency,
            timezone=new_goal.timezone,
        )
