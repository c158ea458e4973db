"""Tests for AchievementService on the in-memory store and catalog."""

from __future__ import annotations

from datetime import datetime, timezone

from perftrack.engine.types import AchievementCategory, AchievementEvent
from perftrack.services.catalog import DEFAULT_DEFINITIONS
from perftrack.stores.memory import MemoryAchievementCatalog

T0 = datetime(2024, 4, 1, tzinfo=timezone.utc)

_BY_CODE = {d.code: d for d in DEFAULT_DEFINITIONS}


def _training(**metrics) -> AchievementEvent:
    return AchievementEvent(category=AchievementCategory.TRAINING, metrics=metrics, timestamp=T0)


class TestEvaluateAchievements:
    async def test_lazily_creates_and_persists_rows(self, achievement_service, store, user_id):
        changed = await achievement_service.evaluate_achievements(
            user_id, _training(sessions_logged=1, sessions_this_week=3)
        )
        assert {a.definition_id for a in changed} == {
            _BY_CODE["first_workout"].id,
            _BY_CODE["week_warrior"].id,
        }

        rows = {a.definition_id: a for a in await store.list_user_achievements(user_id)}
        assert rows[_BY_CODE["first_workout"].id].earned is True
        assert rows[_BY_CODE["first_workout"].id].earned_date == T0
        assert rows[_BY_CODE["week_warrior"].id].progress == 3.0

    async def test_repeat_event_changes_nothing(self, achievement_service, user_id):
        await achievement_service.evaluate_achievements(user_id, _training(sessions_logged=1))
        again = await achievement_service.evaluate_achievements(user_id, _training(sessions_logged=1))
        assert again == []

    async def test_users_are_isolated(self, achievement_service, store, user_id, other_user_id):
        await achievement_service.evaluate_achievements(user_id, _training(sessions_logged=1))
        assert await store.list_user_achievements(other_user_id) == []

    async def test_category_without_definitions(self, store, user_id):
        from perftrack.services.achievement_service import AchievementService

        service = AchievementService(store, MemoryAchievementCatalog([]))
        assert await service.evaluate_achievements(user_id, _training(sessions_logged=1)) == []


    async def test_evaluate_event_reports_first_earn_only(self, achievement_service, user_id):
        first = await achievement_service.evaluate_event(
            user_id, _training(sessions_logged=1, sessions_this_week=2)
        )
        assert [a.definition_id for a in first.newly_earned] == [_BY_CODE["first_workout"].id]
        assert len(first.changed) == 2

        # same timestamp, higher progress on an already earned row
        second = await achievement_service.evaluate_event(
            user_id, _training(sessions_logged=3, sessions_this_week=7)
        )
        assert [a.definition_id for a in second.newly_earned] == [_BY_CODE["week_warrior"].id]
        assert {a.definition_id for a in second.changed} == {
            _BY_CODE["first_workout"].id,
            _BY_CODE["week_warrior"].id,
        }

    async def test_existing_rows_are_advanced_not_recreated(
        self, achievement_service, store, user_id
    ):
        await achievement_service.evaluate_achievements(user_id, _training(sessions_this_week=2))
        before = await store.get_user_achievement(user_id, _BY_CODE["week_warrior"].id)

        await achievement_service.evaluate_achievements(user_id, _training(sessions_this_week=4))
        after = await store.get_user_achievement(user_id, _BY_CODE["week_warrior"].id)
        assert after.id == before.id
        assert after.progress == 4.0
        assert len(await store.list_user_achievements(user_id)) == 1

class TestListAchievements:
    async def test_lists_full_catalog_with_defaults(self, achievement_service, user_id):
        statuses = await achievement_service.list_achievements(user_id)
        assert len(statuses) == len(DEFAULT_DEFINITIONS)
        assert all(not s.earned and s.progress == 0 for s in statuses)

    async def test_sorted_earned_then_progress(self, achievement_service, user_id):
        await achievement_service.evaluate_achievements(
            user_id, _training(sessions_logged=1, sessions_this_week=5)
        )
        statuses = await achievement_service.list_achievements(user_id)

        assert statuses[0].definition.code == "first_workout"
        assert statuses[0].earned is True
        assert statuses[1].definition.code == "week_warrior"
        assert statuses[1].progress == 5.0
