"""Liveness, readiness and version probes."""

import structlog
from fastapi import APIRouter, Depends
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from aura.config import get_settings
from aura.database import get_session
from aura.redis_client import get_redis

logger = structlog.get_logger()

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe: 200 while the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe: database and Redis connectivity."""
    checks: dict[str, str] = {}

    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        checks["database"] = "ok"
    except SQLAlchemyError as exc:
        logger.warning("readiness_database_failed", error=str(exc))
        checks["database"] = f"error: {exc}"

    try:
        await get_redis().ping()
        checks["redis"] = "ok"
    except (RuntimeError, RedisError) as exc:
        checks["redis"] = f"error: {exc}"

    all_ok = all(v == "ok" for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    """API version and deployment environment."""
    settings = get_settings()
    return {
        "name": "aura-clash",
        "version": settings.app_version,
        "environment": settings.environment,
    }
