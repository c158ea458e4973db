"""Performance tracker backend: goals, habit streaks and achievements."""

__version__ = "0.1.0"
