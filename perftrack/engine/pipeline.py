"""Pure goal transition for one progress event.

Runs the progress calculator, streak tracker and completion detector in
order and returns a new Goal; the input goal is never mutated. Achievement
evaluation and persistence are handled by ``ProgressEngine``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

from perftrack.engine.completion import detect_completion
from perftrack.engine.errors import GoalValidationError
from perftrack.engine.progress import MAX_PERCENTAGE, goal_percentage, validate_progress_value
from perftrack.engine.streaks import StreakState, cadence_unit, record_checkin, resolve_timezone
from perftrack.engine.types import Goal, GoalStatus


@dataclass(frozen=True)
class GoalTransition:
    goal: Goal
    newly_completed: bool = False
    streak_changed: bool = False


def apply_progress(
    goal: Goal,
    value: float,
    timestamp: datetime,
    *,
    default_timezone: str = "UTC",
) -> GoalTransition:
    """Apply an observed value at ``timestamp`` to ``goal``.

    Raises:
        GoalValidationError: negative/non-numeric value, abandoned goal,
            a percentage too large to store,
            or a habit goal without a frequency
    """
    value = validate_progress_value(value)
    if goal.status == GoalStatus.ABANDONED:
        raise GoalValidationError("Cannot record progress on an abandoned goal", field="status")

    updated = replace(goal, current_value=value, updated_at=timestamp)

    streak_changed = False
    if goal.is_habit:
        if goal.habit_frequency is None:
            raise GoalValidationError("Habit goal has no habit_frequency", field="habit_frequency")
        tz = resolve_timezone(goal.timezone, default_timezone)
        before = StreakState(goal.current_streak, goal.best_streak, goal.last_checkin_unit)
        after = record_checkin(before, cadence_unit(timestamp, goal.habit_frequency, tz))
        streak_changed = after != before
        updated = replace(
            updated,
            current_streak=after.current_streak,
            best_streak=after.best_streak,
            last_checkin_unit=after.last_checkin_unit,
        )

    percentage = goal_percentage(updated)
    if percentage > MAX_PERCENTAGE:
        raise GoalValidationError(
            f"Progress of {percentage}% is too large to record", field="current_value"
        )
    updated = replace(updated, progress_percentage=percentage)

    outcome = detect_completion(
        updated.status,
        updated.progress_percentage,
        updated.completion_date,
        timestamp,
    )
    updated = replace(updated, status=outcome.status, completion_date=outcome.completion_date)

    return GoalTransition(
        goal=updated,
        newly_completed=outcome.newly_completed,
        streak_changed=streak_changed,
    )
