"""Default achievement catalog and seeding.

The catalog is read-only at runtime. ``seed_achievement_definitions`` inserts
any default definition whose code is missing; existing rows are left alone so
edited titles or point values survive a re-seed.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from perftrack.engine.types import AchievementCategory, AchievementDefinition
from perftrack.models import AchievementDefinitionRow

log = structlog.get_logger(__name__)

# Stable ids so memory and SQL catalogs agree on definition identity.
_NAMESPACE = uuid.UUID("6f1d3c1e-9a57-4b7e-8d0a-2f4c1b7e5a90")


def _definition(
    code: str,
    title: str,
    description: str,
    icon: str,
    category: AchievementCategory,
    metric: str,
    max_progress: float,
    points: int,
) -> AchievementDefinition:
    return AchievementDefinition(
        id=uuid.uuid5(_NAMESPACE, code),
        code=code,
        title=title,
        description=description,
        icon=icon,
        category=category,
        metric=metric,
        max_progress=max_progress,
        points=points,
    )


DEFAULT_DEFINITIONS: tuple[AchievementDefinition, ...] = (
    _definition(
        "first_workout", "First Workout", "Complete your first training session",
        "zap", AchievementCategory.TRAINING, "sessions_logged", 1, 10,
    ),
    _definition(
        "week_warrior", "Week Warrior", "Complete 7 training sessions in one week",
        "trophy", AchievementCategory.TRAINING, "sessions_this_week", 7, 50,
    ),
    _definition(
        "sleep_tracker", "Sleep Tracker", "Log your first sleep session",
        "heart", AchievementCategory.SLEEP, "sessions_logged", 1, 10,
    ),
    _definition(
        "recovery_pro", "Recovery Pro", "Complete 50 recovery activities",
        "star", AchievementCategory.RECOVERY, "sessions_logged", 50, 100,
    ),
    _definition(
        "consistency_king", "Consistency King", "Keep a habit streak for 30 periods",
        "target", AchievementCategory.CONSISTENCY, "best_streak", 30, 150,
    ),
    _definition(
        "streak_starter", "Streak Starter", "Keep a habit streak for 7 periods",
        "zap", AchievementCategory.CONSISTENCY, "current_streak", 7, 25,
    ),
    _definition(
        "goal_getter", "Goal Getter", "Complete your first goal",
        "award", AchievementCategory.MILESTONES, "goals_completed", 1, 25,
    ),
    _definition(
        "goal_crusher", "Goal Crusher", "Complete 10 goals",
        "trophy", AchievementCategory.MILESTONES, "goals_completed", 10, 100,
    ),
)


async def seed_achievement_definitions(
    db: AsyncSession,
    definitions: tuple[AchievementDefinition, ...] = DEFAULT_DEFINITIONS,
) -> int:
    """Insert missing catalog entries. Returns the number inserted."""
    result = await db.execute(select(AchievementDefinitionRow.code))
    existing = set(result.scalars().all())

    inserted = 0
    for definition in definitions:
        if definition.code in existing:
            continue
        db.add(
            AchievementDefinitionRow(
                id=definition.id,
                code=definition.code,
                title=definition.title,
                description=definition.description,
                icon=definition.icon,
                category=str(definition.category),
                metric=definition.metric,
                max_progress=definition.max_progress,
                points=definition.points,
                active=definition.active,
            )
        )
        inserted += 1

    if inserted:
        await db.flush()
    log.info("catalog.seeded", inserted=inserted, total=len(definitions))
    return inserted
