"""Storage ports and their adapters."""

from perftrack.stores.base import AchievementCatalog, GoalStore
from perftrack.stores.memory import MemoryAchievementCatalog, MemoryGoalStore
from perftrack.stores.sql import SqlAchievementCatalog, SqlGoalStore

__all__ = [
    "AchievementCatalog",
    "GoalStore",
    "MemoryAchievementCatalog",
    "MemoryGoalStore",
    "SqlAchievementCatalog",
    "SqlGoalStore",
]
