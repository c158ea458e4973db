"""Progress calculator.

Percentages are whole numbers rounded half-up on the exact decimal ratio, so
``200 / 225`` is 89 and ``1 / 8`` is 13 regardless of float representation.
Overshoot above 100 is preserved; completion detection relies on ``>= 100``.
"""

from __future__ import annotations

import math
from decimal import Decimal
from fractions import Fraction
from numbers import Real

from perftrack.engine.errors import GoalValidationError
from perftrack.engine.types import Goal

# Largest percentage the goals.progress_percentage BIGINT column holds
MAX_PERCENTAGE = 2**63 - 1

_HALF = Fraction(1, 2)


def validate_progress_value(value: object, *, field: str = "current_value") -> float:
    """Return ``value`` as a float or raise GoalValidationError.

    Rejects booleans, non-numbers, NaN/infinity and negative values.
    """
    if isinstance(value, bool) or not isinstance(value, Real):
        raise GoalValidationError(f"{field} must be a number", field=field)
    number = float(value)
    if not math.isfinite(number):
        raise GoalValidationError(f"{field} must be finite", field=field)
    if number < 0:
        raise GoalValidationError(f"{field} must not be negative", field=field)
    return number


def _exact(number: float) -> Fraction:
    # via the shortest repr, so 0.1 is one tenth rather than its binary value
    return Fraction(Decimal(repr(float(number))))


def calculate_percentage(value: float, target: float) -> int:
    """Return ``round(value / target * 100)``, or 0 when the target is 0.

    The ratio is exact, so arbitrarily large overshoot and tiny targets
    produce a (possibly very large) integer rather than an error.
    """
    if target <= 0 or value <= 0:
        return 0
    ratio = _exact(value) / _exact(target) * 100
    return math.floor(ratio + _HALF)


def goal_percentage(goal: Goal) -> int:
    """Percentage for a goal from its current state.

    Habit goals measure the current streak against ``target_value``
    (a target streak length); standard goals measure ``current_value``.
    """
    if goal.is_habit:
        return calculate_percentage(goal.current_streak, goal.target_value)
    return calculate_percentage(goal.current_value, goal.target_value)
