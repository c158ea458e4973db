"""Tests for the in-memory storage adapters."""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime, timezone

import pytest

from perftrack.engine.errors import DuplicateEventError, GoalNotFoundError, VersionConflictError
from perftrack.engine.types import AchievementCategory, ProgressEvent

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestMemoryGoalStore:
    async def test_get_returns_copy(self, store, make_goal):
        goal = await store.add(make_goal())
        fetched = await store.get(goal.id)
        fetched.current_value = 50.0
        assert (await store.get(goal.id)).current_value == 0.0

    async def test_get_missing(self, store):
        with pytest.raises(GoalNotFoundError):
            await store.get(uuid.uuid4())

    async def test_put_bumps_version(self, store, make_goal):
        goal = await store.add(make_goal())
        saved = await store.put(replace(goal, current_value=5.0), expected_version=1)
        assert saved.version == 2
        assert (await store.get(goal.id)).current_value == 5.0

    async def test_put_with_stale_version(self, store, make_goal):
        goal = await store.add(make_goal())
        await store.put(goal, expected_version=1)
        with pytest.raises(VersionConflictError) as exc_info:
            await store.put(goal, expected_version=1)
        assert exc_info.value.expected == 1
        assert exc_info.value.actual == 2

    async def test_put_missing_goal(self, store, make_goal):
        with pytest.raises(GoalNotFoundError):
            await store.put(make_goal(), expected_version=1)

    async def test_duplicate_event(self, store, make_goal):
        goal = await store.add(make_goal())
        event = ProgressEvent("evt-1", goal.id, goal.user_id, 1.0, T0)
        await store.append_progress_event(event)
        with pytest.raises(DuplicateEventError):
            await store.append_progress_event(event)

    async def test_unit_of_work_restores_on_error(self, store, make_goal):
        goal = await store.add(make_goal())

        with pytest.raises(RuntimeError):
            async with store.unit_of_work():
                await store.put(replace(goal, current_value=9.0), expected_version=1)
                await store.append_progress_event(
                    ProgressEvent("evt-1", goal.id, goal.user_id, 9.0, T0)
                )
                raise RuntimeError("fail mid-pipeline")

        assert await store.get(goal.id) == goal
        assert await store.get_progress_event("evt-1") is None

    async def test_user_achievement_lookup(self, store, user_id):
        from perftrack.engine.types import UserAchievement

        definition_id = uuid.uuid4()
        assert await store.get_user_achievement(user_id, definition_id) is None

        await store.put_user_achievement(
            UserAchievement(user_id=user_id, definition_id=definition_id, progress=2.0)
        )
        found = await store.get_user_achievement(user_id, definition_id)
        assert found.progress == 2.0


class TestMemoryAchievementCatalog:
    async def test_filters_by_category(self, catalog):
        defs = await catalog.list_definitions(AchievementCategory.MILESTONES)
        assert {d.code for d in defs} == {"goal_getter", "goal_crusher"}

    async def test_all_active(self, catalog):
        assert len(await catalog.list_definitions()) == 8
