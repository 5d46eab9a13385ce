"""User profile business logic."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from aura.db.models import User
from aura.errors import ConflictError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from aura.auth.dependencies import Identity

logger = structlog.get_logger()

HANDLE_PATTERN = re.compile(r"^[a-z0-9_]{3,20}$")


def normalize_handle(handle: str) -> str:
    """
    Lowercase and validate a handle.

    Raises:
        ValidationError: Empty, wrong length, or characters outside a-z, 0-9 and _.
    """
    normalized = handle.strip().lower()
    if not normalized:
        raise ValidationError("Handle is required")
    if not HANDLE_PATTERN.match(normalized):
        raise ValidationError("Handle must be 3-20 characters: lowercase letters, digits or underscores")
    return normalized


async def _handle_taken(db: AsyncSession, handle: str, exclude_id: str | None = None) -> bool:
    q = select(User.id).where(User.handle == handle)
    if exclude_id is not None:
        q = q.where(User.id != exclude_id)
    result = await db.execute(q)
    return result.first() is not None


async def get_user(db: AsyncSession, user_id: str) -> User:
    """Get a profile by id."""
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def register_profile(
    db: AsyncSession,
    identity: Identity,
    handle: str,
    display_name: str | None = None,
) -> User:
    """
    Create the profile for an authenticated identity. Aura starts at 0.

    Raises:
        ValidationError: If the handle is malformed.
        ConflictError: If the handle is taken or the identity already has a profile.
    """
    normalized = normalize_handle(handle)

    if await db.get(User, identity.user_id) is not None:
        raise ConflictError("Profile already exists")
    if await _handle_taken(db, normalized):
        raise ConflictError("Handle already taken. Please choose another.")

    user = User(
        id=identity.user_id,
        handle=normalized,
        email=identity.email.lower() if identity.email else None,
        display_name=display_name.strip() if display_name else None,
        aura=0,
        is_certified_hooper=False,
        is_cosmic_marshall=False,
        created_at=datetime.now(timezone.utc),
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as e:
        # Lost a race with a concurrent registration for the same handle or identity.
        await db.rollback()
        raise ConflictError("Handle already taken. Please choose another.") from e

    logger.info("profile_registered", user_id=user.id, handle=user.handle)
    return user


async def update_profile(
    db: AsyncSession,
    user: User,
    handle: str | None = None,
    display_name: str | None = None,
    avatar_url: str | None = None,
    banner_url: str | None = None,
    description: str | None = None,
) -> User:
    """
    Update profile fields. Empty strings clear optional fields.

    Raises:
        ValidationError: If the new handle is malformed.
        ConflictError: If the new handle is already taken.
    """
    if handle is not None:
        normalized = normalize_handle(handle)
        if normalized != user.handle:
            if await _handle_taken(db, normalized, exclude_id=user.id):
                raise ConflictError("Handle already taken. Please choose another.")
            user.handle = normalized

    if display_name is not None:
        user.display_name = display_name.strip() or None
    if avatar_url is not None:
        user.avatar_url = avatar_url.strip() or None
    if banner_url is not None:
        user.banner_url = banner_url.strip() or None
    if description is not None:
        user.description = description.strip() or None

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("Handle already taken. Please choose another.") from e
    return user


async def search_users(
    db: AsyncSession,
    query: str,
    exclude_id: str | None = None,
    limit: int = 20,
) -> list[User]:
    """Find users by exact email or handle prefix. The caller is left out."""
    term = query.strip().lower()
    if not term:
        return []

    if "@" in term:
        q = select(User).where(User.email == term)
    else:
        escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        q = select(User).where(User.handle.like(f"{escaped}%", escape="\\"))
    if exclude_id is not None:
        q = q.where(User.id != exclude_id)

    result = await db.execute(q.order_by(User.handle).limit(limit))
    return list(result.scalars().all())
