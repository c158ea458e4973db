"""Goal and habit progress/achievement engine.

Everything in this package is pure: no I/O, no database, no clock reads
except for dataclass defaults. Services in ``perftrack.services`` load and
persist state around these functions.
"""

from perftrack.engine.achievements import evaluate
from perftrack.engine.completion import detect_completion
from perftrack.engine.errors import (
    DuplicateEventError,
    EngineError,
    GoalNotFoundError,
    GoalValidationError,
    UnresolvableMetricError,
    VersionConflictError,
)
from perftrack.engine.pipeline import GoalTransition, apply_progress
from perftrack.engine.progress import calculate_percentage, goal_percentage
from perftrack.engine.streaks import StreakState, cadence_unit, record_checkin

__all__ = [
    "DuplicateEventError",
    "EngineError",
    "GoalNotFoundError",
    "GoalTransition",
    "GoalValidationError",
    "StreakState",
    "UnresolvableMetricError",
    "VersionConflictError",
    "apply_progress",
    "cadence_unit",
    "calculate_percentage",
    "detect_completion",
    "evaluate",
    "goal_percentage",
    "record_checkin",
]
