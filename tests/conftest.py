"""Shared test fixtures.

Tests run against a throwaway SQLite file per test. Redis is never
initialized, so rate limiting passes requests through unless a test installs
a fake client.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from aura.auth.jwt import create_access_token, reset_keys
from aura.config import get_settings
from aura.database import close_db, get_engine, get_session, init_db
from aura.db.base import Base
from aura.db.models import User
from aura.dependencies import get_recap_service
from aura.errors import ExternalServiceError


class FakeRecapService:
    """Stands in for the Claude-backed recap generator."""

    def __init__(self) -> None:
        self.fail = False
        self.calls: list[tuple[str, str, int, int]] = []

    async def generate_recap(
        self,
        player1_name: str,
        player2_name: str,
        player1_score: int,
        player2_score: int,
    ) -> str:
        self.calls.append((player1_name, player2_name, player1_score, player2_score))
        if self.fail:
            raise ExternalServiceError("Recap generation failed")
        return f"Epic clash: {player1_name} {player1_score} - {player2_score} {player2_name}"


@pytest.fixture(autouse=True)
def _test_settings(tmp_path, monkeypatch):
    """Point settings at a per-test SQLite database and clear cached settings."""
    monkeypatch.setenv("AURA_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'aura.db'}")
    monkeypatch.setenv("AURA_ANTHROPIC_API_KEY", "")
    monkeypatch.setenv("AURA_LOG_FORMAT", "console")
    monkeypatch.setenv("AURA_JWT_ALGORITHM", "HS256")
    get_settings.cache_clear()
    get_recap_service.cache_clear()
    reset_keys()
    yield
    get_settings.cache_clear()
    get_recap_service.cache_clear()
    reset_keys()


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Direct database session with a freshly created schema."""
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async for session in get_session():
        yield session
        break
    await close_db()


@pytest.fixture
def recap_service() -> FakeRecapService:
    return FakeRecapService()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, recap_service: FakeRecapService) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app. Shares the database with ``db_session``."""
    from aura.main import create_app

    app = create_app()
    app.dependency_overrides[get_recap_service] = lambda: recap_service
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory that inserts a registered profile directly."""

    async def _make(
        user_id: str,
        handle: str,
        email: str | None = None,
        display_name: str | None = None,
        aura: int = 0,
    ) -> User:
        user = User(
            id=user_id,
            handle=handle,
            email=email or f"{handle}@example.com",
            display_name=display_name,
            aura=aura,
            is_certified_hooper=False,
            is_cosmic_marshall=False,
            created_at=datetime.now(timezone.utc),
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


def auth_header(user_id: str, email: str | None = None, email_verified: bool = True) -> dict[str, str]:
    token = create_access_token(user_id, email=email or f"{user_id}@example.com", email_verified=email_verified)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers() -> Callable[..., dict[str, str]]:
    """Bearer headers for an identity: ``headers("uid-alice")``."""
    return auth_header


@pytest_asyncio.fixture
async def alice(make_user) -> User:
    return await make_user("uid-alice", "alice", display_name="Alice")


@pytest_asyncio.fixture
async def bob(make_user) -> User:
    return await make_user("uid-bob", "bob", display_name="Bob")


@pytest_asyncio.fixture
async def carol(make_user) -> User:
    return await make_user("uid-carol", "carol")
