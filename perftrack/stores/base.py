"""Storage ports for goals, progress events and achievements.

Defines the GoalStore and AchievementCatalog ABCs. Concrete adapters:
- SqlGoalStore / SqlAchievementCatalog: SQLAlchemy async session (production)
- MemoryGoalStore / MemoryAchievementCatalog: dict-backed, for tests/dev

Stores hand out copies of domain records; mutating a returned record has no
effect until it is written back with ``put``.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager

from perftrack.engine.types import (
    AchievementCategory,
    AchievementDefinition,
    Goal,
    GoalStatus,
    ProgressEvent,
    UserAchievement,
)


class GoalStore(ABC):
    """Persistence port used by the goal engine services."""

    @abstractmethod
    async def get(self, goal_id: uuid.UUID) -> Goal:
        """Return the goal or raise GoalNotFoundError."""

    @abstractmethod
    async def list_goals(
        self,
        user_id: uuid.UUID,
        status: GoalStatus | None = None,
    ) -> list[Goal]:
        """Return a user's goals, newest first, optionally filtered by status."""

    @abstractmethod
    async def add(self, goal: Goal) -> Goal:
        """Insert a new goal."""

    @abstractmethod
    async def put(self, goal: Goal, expected_version: int) -> Goal:
        """Compare-and-swap write.

        Succeeds only if the stored version equals ``expected_version``;
        returns the goal with its version incremented.

        Raises:
            VersionConflictError: stored version differs
            GoalNotFoundError: goal does not exist
        """

    @abstractmethod
    async def append_progress_event(self, event: ProgressEvent) -> None:
        """Append an event; raise DuplicateEventError if its id exists."""

    @abstractmethod
    async def get_progress_event(self, event_id: str) -> ProgressEvent | None:
        """Return a previously appended event, or None."""

    @abstractmethod
    async def list_progress_events(self, goal_id: uuid.UUID) -> list[ProgressEvent]:
        """Return a goal's events in timestamp order."""

    @abstractmethod
    async def get_user_achievement(
        self, user_id: uuid.UUID, definition_id: uuid.UUID
    ) -> UserAchievement | None:
        """Return one achievement row, or None if the user has no progress yet."""

    @abstractmethod
    async def list_user_achievements(self, user_id: uuid.UUID) -> list[UserAchievement]:
        """Return all achievement rows for a user."""

    @abstractmethod
    async def put_user_achievement(self, achievement: UserAchievement) -> UserAchievement:
        """Insert or update a user achievement row keyed by (user, definition)."""

    @abstractmethod
    def unit_of_work(self) -> AbstractAsyncContextManager[None]:
        """Atomic scope: on exception every write inside it is discarded."""


class AchievementCatalog(ABC):
    """Read-only source of achievement definitions."""

    @abstractmethod
    async def list_definitions(
        self,
        category: AchievementCategory | None = None,
    ) -> list[AchievementDefinition]:
        """Return active definitions, optionally for one category."""
