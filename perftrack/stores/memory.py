"""Dict-backed stores for tests and local development.

A store-wide asyncio.Lock serialises units of work, and each unit snapshots
the state so a failure restores it exactly.
"""

from __future__ import annotations

import asyncio
import copy
import uuid
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from dataclasses import replace

import structlog

from perftrack.engine.errors import DuplicateEventError, GoalNotFoundError, VersionConflictError
from perftrack.engine.types import (
    AchievementCategory,
    AchievementDefinition,
    Goal,
    GoalStatus,
    ProgressEvent,
    UserAchievement,
)
from perftrack.stores.base import AchievementCatalog, GoalStore

log = structlog.get_logger(__name__)


class MemoryGoalStore(GoalStore):
    def __init__(self) -> None:
        self._goals: dict[uuid.UUID, Goal] = {}
        self._events: dict[str, ProgressEvent] = {}
        self._achievements: dict[tuple[uuid.UUID, uuid.UUID], UserAchievement] = {}
        self._lock = asyncio.Lock()

    async def get(self, goal_id: uuid.UUID) -> Goal:
        goal = self._goals.get(goal_id)
        if goal is None:
            raise GoalNotFoundError(goal_id)
        return replace(goal)

    async def list_goals(
        self,
        user_id: uuid.UUID,
        status: GoalStatus | None = None,
    ) -> list[Goal]:
        goals = [
            replace(g)
            for g in self._goals.values()
            if g.user_id == user_id and (status is None or g.status == status)
        ]
        return sorted(goals, key=lambda g: g.created_at, reverse=True)

    async def add(self, goal: Goal) -> Goal:
        self._goals[goal.id] = replace(goal)
        return replace(goal)

    async def put(self, goal: Goal, expected_version: int) -> Goal:
        stored = self._goals.get(goal.id)
        if stored is None:
            raise GoalNotFoundError(goal.id)
        if stored.version != expected_version:
            raise VersionConflictError(goal.id, expected_version, stored.version)
        written = replace(goal, version=expected_version + 1)
        self._goals[goal.id] = written
        return replace(written)

    async def append_progress_event(self, event: ProgressEvent) -> None:
        if event.event_id in self._events:
            raise DuplicateEventError(event.event_id)
        self._events[event.event_id] = event

    async def get_progress_event(self, event_id: str) -> ProgressEvent | None:
        return self._events.get(event_id)

    async def list_progress_events(self, goal_id: uuid.UUID) -> list[ProgressEvent]:
        events = [e for e in self._events.values() if e.goal_id == goal_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_user_achievement(
        self, user_id: uuid.UUID, definition_id: uuid.UUID
    ) -> UserAchievement | None:
        found = self._achievements.get((user_id, definition_id))
        return replace(found) if found is not None else None

    async def list_user_achievements(self, user_id: uuid.UUID) -> list[UserAchievement]:
        return [replace(a) for (owner, _), a in self._achievements.items() if owner == user_id]

    async def put_user_achievement(self, achievement: UserAchievement) -> UserAchievement:
        key = (achievement.user_id, achievement.definition_id)
        self._achievements[key] = replace(achievement)
        return replace(achievement)

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[None]:
        async with self._lock:
            snapshot = copy.deepcopy((self._goals, self._events, self._achievements))
            try:
                yield
            except Exception:
                self._goals, self._events, self._achievements = snapshot
                log.debug("memory_store.rolled_back")
                raise


class MemoryAchievementCatalog(AchievementCatalog):
    def __init__(self, definitions: Iterable[AchievementDefinition] = ()) -> None:
        self._definitions = list(definitions)

    async def list_definitions(
        self,
        category: AchievementCategory | None = None,
    ) -> list[AchievementDefinition]:
        return [
            d
            for d in self._definitions
            if d.active and (category is None or d.category == category)
        ]
