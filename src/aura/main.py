"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from aura.config import get_settings
from aura.database import close_db, init_db
from aura.health.router import router as health_router
from aura.matches.router import router as matches_router
from aura.middleware import setup_middleware
from aura.redis_client import close_redis, init_redis
from aura.social.notification_router import router as notifications_router
from aura.social.router import router as friends_router
from aura.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    logger.info("api_started", version=settings.app_version, environment=settings.environment)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Aura Clash API",
        description="1v1 match logging, friends, Aura reputation and match recaps",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router)
    app.include_router(users_router)
    app.include_router(matches_router)
    app.include_router(friends_router)
    app.include_router(notifications_router)
    return app


app = create_app()
