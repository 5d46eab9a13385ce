"""Notification inbox endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from aura.auth.dependencies import get_current_user
from aura.database import get_session
from aura.db.models import Notification, User
from aura.dependencies import get_recap_service
from aura.matches.recap_service import RecapService
from aura.matches.router import build_match_response
from aura.social.notification_service import (
    get_notifications,
    get_unread_count,
    mark_all_as_read,
    mark_as_read,
    respond_to_notification,
)
from aura.social.schemas import (
    NotificationListResponse,
    NotificationResponse,
    RespondNotificationRequest,
    RespondNotificationResponse,
    UnreadCountResponse,
)

router = APIRouter(prefix="/api/v1", tags=["Notifications"])


def _notification_response(n: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=n.id,
        type=n.type,
        message=n.message,
        related_id=n.related_id,
        read=n.is_read,
        sender_id=n.sender_id,
        sender_name=n.sender_name,
        timestamp=n.created_at,
    )


@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """List user's notifications (paginated, newest first)."""
    notifications, total = await get_notifications(db, user.id, page, per_page)
    return NotificationListResponse(
        notifications=[_notification_response(n) for n in notifications],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/notifications/unread-count", response_model=UnreadCountResponse)
async def get_unread_notification_count(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    count = await get_unread_count(db, user.id)
    return UnreadCountResponse(unread_count=count)


@router.post("/notifications/read-all", status_code=200)
async def mark_all_read(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Mark all notifications as read."""
    count = await mark_all_as_read(db, user.id)
    await db.commit()
    return {"detail": f"Marked {count} notifications as read"}


@router.post("/notifications/{notification_id}/read", status_code=200)
async def mark_notification_read(
    notification_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Mark a notification as read."""
    found = await mark_as_read(db, user.id, notification_id)
    if not found:
        raise HTTPException(status_code=404, detail="Notification not found")
    await db.commit()
    return {"detail": "Notification marked as read"}


@router.post("/notifications/{notification_id}/respond", response_model=RespondNotificationResponse)
async def respond_notification(
    notification_id: str,
    body: RespondNotificationRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    recap_service: RecapService = Depends(get_recap_service),
):
    """Confirm or reject the match behind a match invitation."""
    notification, match = await respond_to_notification(db, notification_id, user, body.decision, recap_service)
    return RespondNotificationResponse(
        notification=_notification_response(notification),
        match=build_match_response(match),
    )
