"""Habit streak tracking.

A check-in is mapped to a cadence unit (an integer that increases by exactly
one per day, ISO week, or calendar month in the goal owner's timezone). The
streak grows when consecutive units are hit and restarts at 1 after a gap.
``best_streak`` never decreases.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from perftrack.engine.errors import GoalValidationError
from perftrack.engine.types import HabitFrequency


@dataclass(frozen=True)
class StreakState:
    current_streak: int = 0
    best_streak: int = 0
    last_checkin_unit: int | None = None


def resolve_timezone(name: str | None, default: str = "UTC") -> tzinfo:
    """Return the ZoneInfo for ``name`` (falling back to ``default``)."""
    key = name or default
    try:
        return ZoneInfo(key)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise GoalValidationError(f"Unknown timezone: {key!r}", field="timezone") from exc


def cadence_unit(timestamp: datetime, frequency: HabitFrequency, tz: tzinfo) -> int:
    """Map a timestamp to its cadence-unit ordinal in ``tz``.

    Naive timestamps are taken to be UTC.
    """
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)
    local_day = timestamp.astimezone(tz).date()

    if frequency == HabitFrequency.DAILY:
        return local_day.toordinal()
    if frequency == HabitFrequency.WEEKLY:
        monday = local_day - timedelta(days=local_day.weekday())
        return monday.toordinal() // 7
    if frequency == HabitFrequency.MONTHLY:
        return local_day.year * 12 + local_day.month - 1
    raise GoalValidationError(f"Unknown habit frequency: {frequency!r}", field="habit_frequency")


def record_checkin(state: StreakState, unit: int) -> StreakState:
    """Apply one check-in at ``unit`` and return the new state.

    Same-unit and out-of-order (earlier) check-ins leave the state as is.
    """
    last = state.last_checkin_unit
    if last is not None and unit <= last:
        return state

    if last is not None and unit == last + 1:
        current = state.current_streak + 1
    else:
        current = 1

    return replace(
        state,
        current_streak=current,
        best_streak=max(state.best_streak, current),
        last_checkin_unit=unit,
    )
