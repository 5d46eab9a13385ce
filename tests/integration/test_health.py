"""Health endpoint tests."""

from httpx import AsyncClient


async def test_health(client: AsyncClient) -> None:
    """GET /health returns 200 with healthy status."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_readiness_without_redis(client: AsyncClient) -> None:
    """The database answers; Redis is not configured in tests, so the API reports degraded."""
    response = await client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["checks"]["database"] == "ok"
    assert data["checks"]["redis"].startswith("error")
    assert data["status"] == "degraded"


async def test_version(client: AsyncClient) -> None:
    response = await client.get("/version")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "aura-clash"
    assert data["version"] == "0.1.0"
    assert "environment" in data
