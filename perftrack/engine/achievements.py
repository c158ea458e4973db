"""Achievement evaluation.

Pure functions over catalog definitions and a user's existing achievement
rows. Progress only ever moves up, and ``earned`` flips to True at most once.
Persistence lives in ``perftrack.services.achievement_service``.
"""

from __future__ import annotations

import math
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import replace
from numbers import Real

import structlog

from perftrack.engine.errors import UnresolvableMetricError
from perftrack.engine.types import (
    AchievementDefinition,
    AchievementEvent,
    UserAchievement,
)

log = structlog.get_logger(__name__)


def resolve_metric(definition: AchievementDefinition, event: AchievementEvent) -> float:
    """Read the definition's metric from the event.

    Raises:
        UnresolvableMetricError: category mismatch, missing key, or a value
            that is not a finite number
    """
    if definition.category != event.category:
        raise UnresolvableMetricError(
            f"{definition.code}: event category {event.category} does not match "
            f"{definition.category}"
        )
    if definition.metric not in event.metrics:
        raise UnresolvableMetricError(
            f"{definition.code}: metric {definition.metric!r} missing from event"
        )
    value = event.metrics[definition.metric]
    if isinstance(value, bool) or not isinstance(value, Real) or not math.isfinite(value):
        raise UnresolvableMetricError(
            f"{definition.code}: metric {definition.metric!r} is not a finite number"
        )
    return float(value)


def advance_achievement(
    current: UserAchievement,
    definition: AchievementDefinition,
    value: float,
    event: AchievementEvent,
) -> UserAchievement:
    """Return ``current`` advanced by an observed metric value."""
    progress = max(current.progress, value)
    earned = current.earned
    earned_date = current.earned_date
    if not earned and progress >= definition.max_progress:
        earned = True
        earned_date = event.timestamp

    if progress == current.progress and earned == current.earned:
        return current
    return replace(
        current,
        progress=progress,
        earned=earned,
        earned_date=earned_date,
        updated_at=event.timestamp,
    )


def evaluate(
    user_id: uuid.UUID,
    event: AchievementEvent,
    definitions: Iterable[AchievementDefinition],
    existing: Mapping[uuid.UUID, UserAchievement],
) -> list[UserAchievement]:
    """Evaluate an event against matching definitions.

    Args:
        user_id: Owner of the achievement rows
        event: The qualifying event
        definitions: Catalog entries to consider (typically one category)
        existing: The user's current rows keyed by definition id

    Returns:
        Rows that changed, including lazily created ones. Unchanged rows are
        omitted. Unresolvable definitions are skipped and logged.
    """
    updated: list[UserAchievement] = []
    for definition in definitions:
        if not definition.active or definition.category != event.category:
            continue
        try:
            value = resolve_metric(definition, event)
        except UnresolvableMetricError as exc:
            log.warning(
                "achievements.metric_unresolved",
                user_id=str(user_id),
                definition=definition.code,
                error=str(exc),
            )
            continue

        current = existing.get(definition.id)
        is_new = current is None
        if current is None:
            current = UserAchievement(
                user_id=user_id,
                definition_id=definition.id,
                created_at=event.timestamp,
                updated_at=event.timestamp,
            )

        advanced = advance_achievement(current, definition, value, event)
        if advanced is not current or is_new:
            updated.append(advanced)
            if advanced.earned and not current.earned:
                log.info(
                    "achievements.earned",
                    user_id=str(user_id),
                    definition=definition.code,
                    points=definition.points,
                )
    return updated

