"""Notification creation and inbox service.

Notifications are side effects of match and friendship transitions. They are
written in their own step after the triggering change has committed, so a
failed notification write never undoes the change that caused it.

Types: match_invite, match_confirmed, match_rejected, recap_ready,
friend_request, friend_accepted
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from aura.db.models import NOTIFICATION_TYPES, Notification, User
from aura.errors import NotFoundError, ValidationError

if TYPE_CHECKING:
    from aura.db.models import Match
    from aura.matches.recap_service import RecapService

logger = logging.getLogger(__name__)

VALID_TYPES = frozenset(NOTIFICATION_TYPES)


async def notify(
    db: AsyncSession,
    user_id: str,
    type_: str,
    message: str,
    related_id: str | None = None,
    sender_id: str | None = None,
    sender_name: str | None = None,
) -> Notification | None:
    """Append a notification for ``user_id`` and commit it.

    Returns None (and logs) when the write fails.
    """
    if type_ not in VALID_TYPES:
        raise ValueError(f"Invalid notification type: {type_}. Must be one of {sorted(VALID_TYPES)}")

    notification = Notification(
        user_id=user_id,
        type=type_,
        message=message,
        related_id=related_id,
        sender_id=sender_id,
        sender_name=sender_name,
        is_read=False,
        created_at=datetime.now(timezone.utc),
    )
    try:
        db.add(notification)
        await db.commit()
    except SQLAlchemyError:
        logger.warning("Failed to write %s notification for user %s", type_, user_id, exc_info=True)
        await db.rollback()
        return None
    return notification


async def get_notifications(
    db: AsyncSession,
    user_id: str,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Notification], int]:
    """Get user's notifications (paginated, most recent first)."""
    offset = (page - 1) * per_page

    total_result = await db.execute(
        select(func.count()).select_from(Notification).where(Notification.user_id == user_id)
    )
    total = total_result.scalar_one()

    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id)
        .offset(offset)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


async def get_notification(db: AsyncSession, user_id: str, notification_id: str) -> Notification:
    """Get one of the user's notifications. Other users' notifications are reported as missing."""
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    )
    notification = result.scalar_one_or_none()
    if notification is None:
        raise NotFoundError("Notification not found")
    return notification


async def mark_as_read(db: AsyncSession, user_id: str, notification_id: str) -> bool:
    """Mark a single notification as read. Returns True if found."""
    result = await db.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.user_id == user_id)
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    await db.flush()
    return result.rowcount > 0


async def mark_all_as_read(db: AsyncSession, user_id: str) -> int:
    """Mark all unread notifications as read. Returns count updated."""
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    await db.flush()
    return result.rowcount


async def get_unread_count(db: AsyncSession, user_id: str) -> int:
    """Get count of unread notifications."""
    result = await db.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
    )
    return result.scalar_one()


async def respond_to_notification(
    db: AsyncSession,
    notification_id: str,
    user: User,
    decision: str,
    recap_service: RecapService,
) -> tuple[Notification, Match]:
    """Confirm or reject the match referenced by a match_invite notification.

    The notification is marked read and its message replaced with the outcome.
    """
    from aura.matches.resolution import resolve_match

    notification = await get_notification(db, user.id, notification_id)
    if notification.type != "match_invite" or not notification.related_id:
        raise ValidationError("Only match invitations can be answered")

    match = await resolve_match(db, notification.related_id, user, decision, recap_service)

    if decision == "confirm":
        outcome = "Match confirmed. Aura updated"
        outcome += " and recap generated." if match.recap else "."
    else:
        outcome = "Match rejected."
    notification.is_read = True
    notification.message = outcome
    await db.commit()
    await db.refresh(notification)
    return notification, match
