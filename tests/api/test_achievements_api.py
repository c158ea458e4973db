"""Tests for the achievements API endpoints."""

from __future__ import annotations

from httpx import AsyncClient


class TestAchievementsApi:
    async def test_requires_auth(self, client: AsyncClient):
        response = await client.get("/api/v1/achievements")
        assert response.status_code == 401

    async def test_lists_catalog_with_progress(self, client, auth_headers):
        response = await client.get("/api/v1/achievements", headers=auth_headers)
        assert response.status_code == 200
        items = response.json()
        assert len(items) == 8
        assert all(item["earned"] is False for item in items)

    async def test_event_earns_and_lists_first(self, client, auth_headers):
        response = await client.post(
            "/api/v1/achievements/events",
            json={"category": "training", "metrics": {"sessions_logged": 1}},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["changed"] == 1
        assert len(response.json()["newly_earned"]) == 1

        items = (await client.get("/api/v1/achievements", headers=auth_headers)).json()
        assert items[0]["code"] == "first_workout"
        assert items[0]["earned"] is True
        assert items[0]["earned_date"] is not None

    async def test_unknown_category_is_422(self, client, auth_headers):
        response = await client.post(
            "/api/v1/achievements/events",
            json={"category": "nutrition", "metrics": {"meals": 3}},
            headers=auth_headers,
        )
        assert response.status_code == 422

    async def test_achievements_are_per_user(self, client, auth_headers, other_auth_headers):
        await client.post(
            "/api/v1/achievements/events",
            json={"category": "sleep", "metrics": {"sessions_logged": 1}},
            headers=auth_headers,
        )
        items = (await client.get("/api/v1/achievements", headers=other_auth_headers)).json()
        assert not any(item["earned"] for item in items)

    async def test_progress_on_earned_row_is_not_reported_as_new(self, client, auth_headers):
        body = {
            "category": "training",
            "metrics": {"sessions_logged": 1},
            "timestamp": "2024-03-01T07:00:00Z",
        }
        first = await client.post("/api/v1/achievements/events", json=body, headers=auth_headers)
        assert len(first.json()["newly_earned"]) == 1

        body["metrics"] = {"sessions_logged": 4}
        second = await client.post("/api/v1/achievements/events", json=body, headers=auth_headers)
        assert second.json()["changed"] == 1
        assert second.json()["newly_earned"] == []
