"""Exceptions raised by the goal engine and its stores.

Routers translate these into HTTP status codes; nothing in the engine
catches them except where noted (DuplicateEventError becomes a no-op replay).
"""

from __future__ import annotations

import uuid


class EngineError(Exception):
    """Base class for goal engine errors."""


class GoalValidationError(EngineError):
    """Raised when input is malformed. Nothing has been mutated."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class GoalNotFoundError(EngineError):
    """Raised when a goal does not exist or is not owned by the caller."""

    def __init__(self, goal_id: uuid.UUID) -> None:
        super().__init__(f"Goal {goal_id} not found")
        self.goal_id = goal_id


class VersionConflictError(EngineError):
    """Raised when another writer updated the goal first.

    The caller must re-read the goal and retry.
    """

    def __init__(self, goal_id: uuid.UUID, expected: int, actual: int | None = None) -> None:
        detail = f"expected version {expected}"
        if actual is not None:
            detail += f", found {actual}"
        super().__init__(f"Goal {goal_id} was modified concurrently ({detail})")
        self.goal_id = goal_id
        self.expected = expected
        self.actual = actual


class DuplicateEventError(EngineError):
    """Raised by a store when a progress event id was already appended."""

    def __init__(self, event_id: str) -> None:
        super().__init__(f"Progress event {event_id!r} already recorded")
        self.event_id = event_id


class UnresolvableMetricError(EngineError):
    """Raised when an achievement metric cannot be read from an event."""
