"""Middleware tests: request id, rate limiting, CORS and error bodies."""

from __future__ import annotations

from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from aura.config import get_settings
from aura.main import create_app


class FakePipeline:
    def __init__(self, counters: dict[str, int]) -> None:
        self._counters = counters
        self._ops: list[tuple[str, str]] = []

    def incr(self, key: str) -> None:
        self._ops.append(("incr", key))

    def expire(self, key: str, _seconds: int) -> None:
        self._ops.append(("expire", key))

    async def execute(self) -> list[Any]:
        results: list[Any] = []
        for op, key in self._ops:
            if op == "incr":
                self._counters[key] = self._counters.get(key, 0) + 1
                results.append(self._counters[key])
            else:
                results.append(True)
        return results


class FakeRedis:
    def __init__(self) -> None:
        self.counters: dict[str, int] = {}

    def pipeline(self) -> FakePipeline:
        return FakePipeline(self.counters)


@pytest.fixture
def limited_client(monkeypatch):
    """Client for an app limited to 3 requests per window, with an in-memory Redis."""
    monkeypatch.setenv("AURA_RATE_LIMIT_REQUESTS", "3")
    get_settings.cache_clear()
    fake = FakeRedis()
    monkeypatch.setattr("aura.middleware.rate_limit.get_redis", lambda: fake)
    app = create_app()
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


async def test_request_id_generated(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert "x-request-id" in response.headers
    assert len(response.headers["x-request-id"]) == 36


async def test_request_id_preserved(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-Id": "test-abc-123"})
    assert response.headers["x-request-id"] == "test-abc-123"


async def test_rate_limit_passes_through_without_redis(client: AsyncClient) -> None:
    response = await client.get("/version")
    assert response.status_code == 200
    assert "x-ratelimit-limit" not in response.headers


async def test_rate_limit_headers(limited_client: AsyncClient) -> None:
    async with limited_client as ac:
        response = await ac.get("/version")
    assert response.headers["x-ratelimit-limit"] == "3"
    assert response.headers["x-ratelimit-remaining"] == "2"


async def test_rate_limit_blocks_excess(limited_client: AsyncClient) -> None:
    async with limited_client as ac:
        for _ in range(3):
            assert (await ac.get("/version")).status_code == 200
        response = await ac.get("/version")
    assert response.status_code == 429
    assert response.headers["retry-after"] == "60"
    assert response.json()["code"] == "rate_limited"


async def test_health_exempt_from_rate_limit(limited_client: AsyncClient) -> None:
    async with limited_client as ac:
        for _ in range(10):
            assert (await ac.get("/health")).status_code == 200


async def test_cors_preflight(client: AsyncClient) -> None:
    response = await client.options(
        "/health",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


async def test_unknown_route_is_json(client: AsyncClient) -> None:
    response = await client.get("/api/v1/nope")
    assert response.status_code == 404
    assert response.json() == {"detail": "Not Found", "code": "not_found"}
