"""Domain records shared by the engine, the stores and the API.

These are plain dataclasses; the SQL store maps them to ORM rows in
``perftrack.models``. Enumerations are StrEnums so they serialise as their
string values everywhere.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import StrEnum
from types import MappingProxyType
from typing import Any, Mapping


class GoalStatus(StrEnum):
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"
    ABANDONED = "abandoned"


class GoalCategory(StrEnum):
    PERFORMANCE = "performance"
    TRAINING = "training"
    SLEEP = "sleep"
    RECOVERY = "recovery"
    NUTRITION = "nutrition"
    SUPPLEMENTS = "supplements"
    LIFESTYLE = "lifestyle"
    OTHER = "other"


class GoalPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class HabitFrequency(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class EventSource(StrEnum):
    MANUAL = "manual"
    DERIVED = "derived"


class AchievementCategory(StrEnum):
    TRAINING = "training"
    SLEEP = "sleep"
    RECOVERY = "recovery"
    CONSISTENCY = "consistency"
    MILESTONES = "milestones"


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class Goal:
    """A SMART goal, optionally tracked as a habit.

    ``progress_percentage``, ``current_streak``, ``best_streak`` and
    ``completion_date`` are owned by the engine; callers never set them.
    """

    user_id: uuid.UUID
    title: str
    specific: str
    measurable: str
    achievable: str
    relevant: str
    target_value: float
    target_unit: str = ""
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    description: str = ""
    time_bound: date | None = None
    motivation_note: str = ""
    category: GoalCategory = GoalCategory.PERFORMANCE
    priority: GoalPriority = GoalPriority.MEDIUM
    current_value: float = 0.0
    progress_percentage: int = 0
    status: GoalStatus = GoalStatus.ACTIVE
    is_habit: bool = False
    habit_frequency: HabitFrequency | None = None
    current_streak: int = 0
    best_streak: int = 0
    last_checkin_unit: int | None = None
    timezone: str | None = None
    completion_date: datetime | None = None
    version: int = 1
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class ProgressEvent:
    """Immutable record of one observed value for a goal."""

    event_id: str
    goal_id: uuid.UUID
    user_id: uuid.UUID
    value: float
    timestamp: datetime
    source: EventSource = EventSource.MANUAL
    note: str | None = None
    recorded_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class AchievementDefinition:
    """Catalog entry: earn once ``metrics[metric]`` reaches ``max_progress``."""

    code: str
    title: str
    category: AchievementCategory
    metric: str
    max_progress: float
    points: int
    description: str = ""
    icon: str = "trophy"
    active: bool = True
    id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass
class UserAchievement:
    user_id: uuid.UUID
    definition_id: uuid.UUID
    progress: float = 0.0
    earned: bool = False
    earned_date: datetime | None = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class AchievementEvent:
    """A qualifying event fed to the achievement evaluator.

    ``metrics`` maps metric keys (e.g. ``sessions_logged``) to the value
    observed at ``timestamp``.
    """

    category: AchievementCategory
    metrics: Mapping[str, Any]
    timestamp: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        object.__setattr__(self, "metrics", MappingProxyType(dict(self.metrics)))
