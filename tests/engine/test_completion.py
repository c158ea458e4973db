"""Tests for completion detection and the pure progress pipeline."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from perftrack.engine.completion import detect_completion
from perftrack.engine.errors import GoalValidationError
from perftrack.engine.pipeline import apply_progress
from perftrack.engine.types import GoalStatus

NOW = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


class TestDetectCompletion:
    def test_active_goal_at_100_completes(self):
        outcome = detect_completion(GoalStatus.ACTIVE, 100, None, NOW)
        assert outcome.status == GoalStatus.COMPLETED
        assert outcome.completion_date == NOW
        assert outcome.newly_completed is True

    def test_below_threshold_stays_active(self):
        outcome = detect_completion(GoalStatus.ACTIVE, 99, None, NOW)
        assert outcome.status == GoalStatus.ACTIVE
        assert outcome.completion_date is None
        assert outcome.newly_completed is False

    def test_completion_date_is_first_writer_wins(self):
        earlier = NOW - timedelta(days=30)
        outcome = detect_completion(GoalStatus.ACTIVE, 120, earlier, NOW)
        assert outcome.completion_date == earlier

    @pytest.mark.parametrize("status", [GoalStatus.PAUSED, GoalStatus.COMPLETED, GoalStatus.ABANDONED])
    def test_non_active_goals_are_untouched(self, status):
        outcome = detect_completion(status, 150, None, NOW)
        assert outcome.status == status
        assert outcome.newly_completed is False


class TestApplyProgress:
    def test_updates_value_and_percentage(self, make_goal):
        goal = make_goal(target_value=225.0)
        transition = apply_progress(goal, 200, NOW)
        assert transition.goal.current_value == 200.0
        assert transition.goal.progress_percentage == 89
        assert transition.goal.status == GoalStatus.ACTIVE
        assert transition.newly_completed is False

    def test_does_not_mutate_input(self, make_goal):
        goal = make_goal(target_value=225.0)
        apply_progress(goal, 225, NOW)
        assert goal.current_value == 0.0
        assert goal.status == GoalStatus.ACTIVE

    def test_reaching_target_completes(self, make_goal):
        transition = apply_progress(make_goal(target_value=225.0), 225, NOW)
        assert transition.goal.status == GoalStatus.COMPLETED
        assert transition.goal.completion_date == NOW
        assert transition.newly_completed is True

    def test_paused_goal_updates_but_does_not_complete(self, make_goal):
        goal = make_goal(target_value=10.0, status=GoalStatus.PAUSED)
        transition = apply_progress(goal, 12, NOW)
        assert transition.goal.current_value == 12.0
        assert transition.goal.progress_percentage == 120
        assert transition.goal.status == GoalStatus.PAUSED

    def test_abandoned_goal_rejects_progress(self, make_goal):
        with pytest.raises(GoalValidationError):
            apply_progress(make_goal(status=GoalStatus.ABANDONED), 5, NOW)

    def test_completed_goal_keeps_status_and_date(self, make_goal):
        done = NOW - timedelta(days=2)
        goal = make_goal(
            target_value=10.0,
            current_value=10.0,
            status=GoalStatus.COMPLETED,
            completion_date=done,
        )
        transition = apply_progress(goal, 4, NOW)
        assert transition.goal.status == GoalStatus.COMPLETED
        assert transition.goal.completion_date == done
        assert transition.goal.progress_percentage == 40

    def test_habit_progress_follows_streak(self, make_habit):
        goal = make_habit(target_value=2.0)
        first = apply_progress(goal, 1, NOW)
        assert first.streak_changed is True
        assert first.goal.current_streak == 1
        assert first.goal.progress_percentage == 50

        second = apply_progress(first.goal, 1, NOW + timedelta(days=1))
        assert second.goal.current_streak == 2
        assert second.goal.status == GoalStatus.COMPLETED
        assert second.newly_completed is True

    def test_same_day_habit_checkin_does_not_change_streak(self, make_habit):
        first = apply_progress(make_habit(), 1, NOW)
        again = apply_progress(first.goal, 1, NOW + timedelta(hours=2))
        assert again.streak_changed is False
        assert again.goal.current_streak == 1

    def test_habit_without_frequency_is_rejected(self, make_habit):
        with pytest.raises(GoalValidationError):
            apply_progress(make_habit(habit_frequency=None), 1, NOW)
