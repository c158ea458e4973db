"""ORM models package.

Import all models here so that SQLAlchemy's metadata is fully populated
when Alembic runs autogenerate.
"""

from perftrack.models.achievement import AchievementDefinitionRow, UserAchievementRow
from perftrack.models.goal import GoalRow
from perftrack.models.progress_event import ProgressEventRow

__all__ = [
    "AchievementDefinitionRow",
    "GoalRow",
    "ProgressEventRow",
    "UserAchievementRow",
]
