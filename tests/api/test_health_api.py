"""Tests for health check endpoints."""

from __future__ import annotations

from httpx import AsyncClient


async def test_liveness(client: AsyncClient) -> None:
    response = await client.get("/health/live")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


async def test_readiness_without_database(client: AsyncClient) -> None:
    """The test app never initializes the engine, so readiness reports 503."""
    response = await client.get("/health/ready")
    assert response.status_code == 503
    assert response.json()["status"] == "not_ready"


async def test_request_id_header(client: AsyncClient) -> None:
    response = await client.get("/health/live")
    assert response.headers["x-request-id"].startswith("req_")


async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


async def test_request_id_header_reuses_caller_id(client: AsyncClient) -> None:
    response = await client.get("/health/live", headers={"x-request-id": "trace-abc12345"})
    assert response.headers["x-request-id"] == "trace-abc12345"


async def test_request_id_header_rejects_unsafe_caller_id(client: AsyncClient) -> None:
    response = await client.get("/health/live", headers={"x-request-id": "bad id<script>"})
    assert response.headers["x-request-id"].startswith("req_")
