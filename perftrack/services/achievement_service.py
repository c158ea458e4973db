"""Achievement service: evaluate qualifying events and report progress.

Wraps the pure evaluator in ``perftrack.engine.achievements`` with catalog
lookups and store writes.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime

import structlog

from perftrack.engine.achievements import evaluate
from perftrack.engine.types import AchievementDefinition, AchievementEvent, UserAchievement
from perftrack.stores.base import AchievementCatalog, GoalStore

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AchievementStatus:
    """A catalog definition joined with one user's progress on it."""

    definition: AchievementDefinition
    progress: float
    earned: bool
    earned_date: datetime | None


@dataclass(frozen=True)
class AchievementEvaluation:
    """Rows one event changed, and the subset earned for the first time."""

    changed: list[UserAchievement] = field(default_factory=list)
    newly_earned: list[UserAchievement] = field(default_factory=list)


class AchievementService:
    """Service for evaluating and listing user achievements."""

    def __init__(self, store: GoalStore, catalog: AchievementCatalog) -> None:
        self._store = store
        self._catalog = catalog

    async def evaluate_achievements(
        self,
        user_id: uuid.UUID,
        event: AchievementEvent,
    ) -> list[UserAchievement]:
        """Evaluate one event atomically and return the rows that changed."""
        return (await self.evaluate_event(user_id, event)).changed

    async def evaluate_event(
        self,
        user_id: uuid.UUID,
        event: AchievementEvent,
    ) -> AchievementEvaluation:
        """Like ``evaluate_achievements`` but also reports first-time earns."""
        async with self._store.unit_of_work():
            return await self._evaluate(user_id, event)

    async def evaluate_in_unit(
        self,
        user_id: uuid.UUID,
        event: AchievementEvent,
    ) -> list[UserAchievement]:
        """Evaluate inside a unit of work the caller already opened."""
        return (await self._evaluate(user_id, event)).changed

    async def _evaluate(self, user_id: uuid.UUID, event: AchievementEvent) -> AchievementEvaluation:
        definitions = [
            d for d in await self._catalog.list_definitions(event.category) if d.active
        ]
        if not definitions:
            return AchievementEvaluation()

        existing: dict[uuid.UUID, UserAchievement] = {}
        for definition in definitions:
            row = await self._store.get_user_achievement(user_id, definition.id)
            if row is not None:
                existing[definition.id] = row

        changed = evaluate(user_id, event, definitions, existing)
        saved = [await self._store.put_user_achievement(a) for a in changed]
        newly_earned = [
            a
            for a in saved
            if a.earned and not (a.definition_id in existing and existing[a.definition_id].earned)
        ]

        log.info(
            "achievement_service.evaluated",
            user_id=str(user_id),
            category=str(event.category),
            definitions=len(definitions),
            changed=len(saved),
            newly_earned=len(newly_earned),
        )
        return AchievementEvaluation(changed=saved, newly_earned=newly_earned)

    async def list_achievements(self, user_id: uuid.UUID) -> list[AchievementStatus]:
        """Return every active definition with the user's progress.

        Sorted earned first, then by progress (highest first), then title.
        """
        definitions = await self._catalog.list_definitions()
        rows = {a.definition_id: a for a in await self._store.list_user_achievements(user_id)}

        statuses = []
        for definition in definitions:
            row = rows.get(definition.id)
            statuses.append(
                AchievementStatus(
                    definition=definition,
                    progress=row.progress if row else 0.0,
                    earned=row.earned if row else False,
                    earned_date=row.earned_date if row else None,
                )
            )
        statuses.sort(key=lambda s: (not s.earned, -s.progress, s.definition.title))
        return statuses

