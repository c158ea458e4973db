"""Completion detection: the one-way active -> completed transition."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from perftrack.engine.types import GoalStatus

COMPLETION_THRESHOLD = 100


@dataclass(frozen=True)
class CompletionOutcome:
    status: GoalStatus
    completion_date: datetime | None
    newly_completed: bool = False


def detect_completion(
    status: GoalStatus,
    percentage: int,
    completion_date: datetime | None,
    timestamp: datetime,
) -> CompletionOutcome:
    """Complete an active goal that reached 100%.

    ``completion_date`` is first-writer-wins. Goals that are not active
    (including already completed ones) are returned unchanged.
    """
    if status != GoalStatus.ACTIVE or percentage < COMPLETION_THRESHOLD:
        return CompletionOutcome(status=status, completion_date=completion_date)

    return CompletionOutcome(
        status=GoalStatus.COMPLETED,
        completion_date=completion_date or timestamp,
        newly_completed=True,
    )
