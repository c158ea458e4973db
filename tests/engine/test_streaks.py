"""Tests for habit cadence units and streak transitions."""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from perftrack.engine.errors import GoalValidationError
from perftrack.engine.streaks import StreakState, cadence_unit, record_checkin, resolve_timezone
from perftrack.engine.types import HabitFrequency

UTC = timezone.utc


def _at(day: str, hour: int = 12, tz=UTC) -> datetime:
    return datetime.fromisoformat(day).replace(hour=hour, tzinfo=tz)


class TestCadenceUnit:
    def test_daily_units_are_consecutive(self):
        a = cadence_unit(_at("2024-01-01"), HabitFrequency.DAILY, UTC)
        b = cadence_unit(_at("2024-01-02"), HabitFrequency.DAILY, UTC)
        assert b == a + 1

    def test_daily_same_day_same_unit(self):
        a = cadence_unit(_at("2024-01-01", 0), HabitFrequency.DAILY, UTC)
        b = cadence_unit(_at("2024-01-01", 23), HabitFrequency.DAILY, UTC)
        assert a == b

    def test_weekly_groups_monday_to_sunday(self):
        monday = cadence_unit(_at("2024-01-01"), HabitFrequency.WEEKLY, UTC)
        sunday = cadence_unit(_at("2024-01-07"), HabitFrequency.WEEKLY, UTC)
        next_monday = cadence_unit(_at("2024-01-08"), HabitFrequency.WEEKLY, UTC)
        assert monday == sunday
        assert next_monday == monday + 1

    def test_monthly_crosses_year_boundary(self):
        dec = cadence_unit(_at("2023-12-31"), HabitFrequency.MONTHLY, UTC)
        jan = cadence_unit(_at("2024-01-01"), HabitFrequency.MONTHLY, UTC)
        assert jan == dec + 1

    def test_unit_is_computed_in_owner_timezone(self):
        # 2024-01-02 03:00 UTC is still 2024-01-01 in New York
        tz = ZoneInfo("America/New_York")
        ts = _at("2024-01-02", 3)
        local = cadence_unit(ts, HabitFrequency.DAILY, tz)
        assert local == cadence_unit(_at("2024-01-01"), HabitFrequency.DAILY, UTC)

    def test_naive_timestamp_is_treated_as_utc(self):
        naive = datetime(2024, 1, 1, 12)
        assert cadence_unit(naive, HabitFrequency.DAILY, UTC) == cadence_unit(
            _at("2024-01-01"), HabitFrequency.DAILY, UTC
        )


class TestRecordCheckin:
    def test_daily_sequence_with_gap(self):
        state = StreakState()
        streaks = []
        for day in ("2024-01-01", "2024-01-02", "2024-01-03", "2024-01-05"):
            state = record_checkin(state, cadence_unit(_at(day), HabitFrequency.DAILY, UTC))
            streaks.append(state.current_streak)

        assert streaks == [1, 2, 3, 1]
        assert state.best_streak == 3

    def test_first_checkin_starts_streak(self):
        state = record_checkin(StreakState(), 100)
        assert state == StreakState(current_streak=1, best_streak=1, last_checkin_unit=100)

    def test_same_unit_is_idempotent(self):
        state = record_checkin(StreakState(), 100)
        assert record_checkin(state, 100) is state

    def test_out_of_order_checkin_is_ignored(self):
        state = StreakState(current_streak=3, best_streak=3, last_checkin_unit=100)
        assert record_checkin(state, 98) is state

    def test_best_streak_never_decreases(self):
        state = StreakState(current_streak=2, best_streak=9, last_checkin_unit=100)
        after_gap = record_checkin(state, 105)
        assert after_gap.current_streak == 1
        assert after_gap.best_streak == 9


class TestResolveTimezone:
    def test_falls_back_to_default(self):
        assert resolve_timezone(None, "Europe/Prague") == ZoneInfo("Europe/Prague")

    def test_unknown_zone_is_a_validation_error(self):
        with pytest.raises(GoalValidationError) as exc_info:
            resolve_timezone("Mars/Olympus_Mons")
        assert exc_info.value.field == "timezone"
