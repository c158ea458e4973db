"""Services that load and persist state around the pure engine."""

from perftrack.services.achievement_service import AchievementService, AchievementStatus
from perftrack.services.goal_service import GoalService, GoalSummary, NewGoal
from perftrack.services.progress_engine import ProgressEngine, ProgressResult

__all__ = [
    "AchievementService",
    "AchievementStatus",
    "GoalService",
    "GoalSummary",
    "NewGoal",
    "ProgressEngine",
    "ProgressResult",
]
