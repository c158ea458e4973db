"""Progress engine: apply one progress event to a goal, end to end.

Pipeline (inside a single store unit of work)::

    validate -> replay check -> progress -> streak -> completion
             -> CAS write -> append event -> achievements

Either every resulting change commits or none does. Replaying an event id
that was already applied returns the stored goal with ``applied=False``.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

from perftrack.engine.errors import DuplicateEventError, GoalNotFoundError, GoalValidationError
from perftrack.engine.pipeline import GoalTransition, apply_progress
from perftrack.engine.progress import validate_progress_value
from perftrack.engine.types import (
    AchievementCategory,
    AchievementEvent,
    EventSource,
    Goal,
    GoalStatus,
    ProgressEvent,
    UserAchievement,
)
from perftrack.services.achievement_service import AchievementService
from perftrack.stores.base import GoalStore

log = structlog.get_logger(__name__)

MAX_EVENT_ID_LENGTH = 128


@dataclass(frozen=True)
class ProgressResult:
    goal: Goal
    applied: bool
    newly_completed: bool = False
    achievements: list[UserAchievement] = field(default_factory=list)


class ProgressEngine:
    """Applies progress events to goals under optimistic concurrency."""

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

    async def apply_progress_event(
        self,
        goal_id: uuid.UUID,
        new_value: float,
        timestamp: datetime,
        source: EventSource | str,
        event_id: str,
        *,
        note: str | None = None,
        expected_version: int | None = None,
        user_id: uuid.UUID | None = None,
    ) -> ProgressResult:
        """Apply an observed value to a goal.

        Args:
            goal_id: Goal to update
            new_value: Newly observed current value (must be >= 0)
            timestamp: When the value was observed
            source: ``manual`` or ``derived``
            event_id: Stable idempotency key for this observation
            note: Optional free-text note stored with the event
            expected_version: Version the caller last read; enforced if given
            user_id: When given, the goal must belong to this user

        Returns:
            ProgressResult with the resulting goal and any achievement rows
            that changed

        Raises:
            GoalValidationError: malformed input; nothing was written
            GoalNotFoundError: unknown goal (or owned by another user)
            VersionConflictError: another writer got there first
        """
        value = validate_progress_value(new_value)
        source = self._validate_source(source)
        self._validate_event_id(event_id)
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=UTC)

        try:
            async with self._store.unit_of_work():
                return await self._apply(
                    goal_id, value, timestamp, source, event_id, note, expected_version, user_id
                )
        except DuplicateEventError:
            # A concurrent attempt appended the same id first; ours was rolled back.
            log.info("progress_engine.replay_race", goal_id=str(goal_id), event_id=event_id)
            goal = await self._get_owned(goal_id, user_id)
            return ProgressResult(goal=goal, applied=False)

    async def _apply(
        self,
        goal_id: uuid.UUID,
        value: float,
        timestamp: datetime,
        source: EventSource,
        event_id: str,
        note: str | None,
        expected_version: int | None,
        user_id: uuid.UUID | None,
    ) -> ProgressResult:
        try:
            goal = await self._get_owned(goal_id, user_id)
        except GoalNotFoundError:
            log.warning("progress_engine.goal_missing", goal_id=str(goal_id), event_id=event_id)
            raise

        previous = await self._store.get_progress_event(event_id)
        if previous is not None:
            if previous.goal_id != goal_id:
                raise GoalValidationError(
                    f"Event id {event_id!r} already belongs to another goal",
                    field="event_id",
                )
            log.info("progress_engine.replayed", goal_id=str(goal_id), event_id=event_id)
            return ProgressResult(goal=goal, applied=False)

        version = expected_version if expected_version is not None else goal.version
        transition = apply_progress(
            goal, value, timestamp, default_timezone=self._default_timezone
        )
        saved = await self._store.put(transition.goal, expected_version=version)

        await self._store.append_progress_event(
            ProgressEvent(
                event_id=event_id,
                goal_id=goal.id,
                user_id=goal.user_id,
                value=value,
                timestamp=timestamp,
                source=source,
                note=note,
            )
        )

        achievements = await self._evaluate(saved, transition, timestamp)

        log.info(
            "progress_engine.applied",
            goal_id=str(goal_id),
            event_id=event_id,
            source=str(source),
            progress=saved.progress_percentage,
            status=str(saved.status),
            streak=saved.current_streak,
            version=saved.version,
        )
        return ProgressResult(
            goal=saved,
            applied=True,
            newly_completed=transition.newly_completed,
            achievements=achievements,
        )

    async def _evaluate(
        self,
        goal: Goal,
        transition: GoalTransition,
        timestamp: datetime,
    ) -> list[UserAchievement]:
        events: list[AchievementEvent] = []
        if transition.streak_changed:
            events.append(
                AchievementEvent(
                    category=AchievementCategory.CONSISTENCY,
                    metrics={
                        "current_streak": goal.current_streak,
                        "best_streak": goal.best_streak,
                    },
                    timestamp=timestamp,
                )
            )
        if transition.newly_completed:
            completed = await self._store.list_goals(goal.user_id, status=GoalStatus.COMPLETED)
            events.append(
                AchievementEvent(
                    category=AchievementCategory.MILESTONES,
                    metrics={"goals_completed": len(completed)},
                    timestamp=timestamp,
                )
            )

        changed: list[UserAchievement] = []
        for event in events:
            changed.extend(await self._achievements.evaluate_in_unit(goal.user_id, event))
        return changed

    async def _get_owned(self, goal_id: uuid.UUID, user_id: uuid.UUID | None) -> Goal:
        goal = await self._store.get(goal_id)
        if user_id is not None and goal.user_id != user_id:
            raise GoalNotFoundError(goal_id)
        return goal

    @staticmethod
    def _validate_source(source: EventSource | str) -> EventSource:
        try:
            return EventSource(source)
        except ValueError as exc:
            raise GoalValidationError(f"Unknown event source: {source!r}", field="source") from exc

    @staticmethod
    def _validate_event_id(event_id: str) -> None:
        if not isinstance(event_id, str) or not event_id.strip():
            raise GoalValidationError("event_id is required", field="event_id")
        if len(event_id) > MAX_EVENT_ID_LENGTH:
            raise GoalValidationError(
                f"event_id must be at most {MAX_EVENT_ID_LENGTH} characters",
                field="event_id",
            )
