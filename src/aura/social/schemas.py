"""Pydantic schemas for social endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from aura.matches.schemas import Decision, MatchResponse
from aura.users.schemas import PublicUserResponse

NotificationType = Literal[
    "match_invite",
    "match_confirmed",
    "match_rejected",
    "recap_ready",
    "friend_request",
    "friend_accepted",
]
FriendRequestStatus = Literal["pending", "accepted", "declined"]


# --- Friends ---


class SendFriendRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=128)


class RespondFriendRequest(BaseModel):
    accept: bool


class FriendRequestResponse(BaseModel):
    id: str
    from_user_id: str
    to_user_id: str
    status: FriendRequestStatus
    created_at: datetime
    responded_at: datetime | None = None
    other_user: PublicUserResponse | None = None


class FriendRequestListResponse(BaseModel):
    requests: list[FriendRequestResponse]


class FriendListResponse(BaseModel):
    friends: list[PublicUserResponse]


# --- Notifications ---


class NotificationResponse(BaseModel):
    id: str
    type: NotificationType
    message: str
    related_id: str | None = None
    read: bool
    sender_id: str | None = None
    sender_name: str | None = None
    timestamp: datetime


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    total: int
    page: int
    per_page: int


class UnreadCountResponse(BaseModel):
    unread_count: int


class RespondNotificationRequest(BaseModel):
    decision: Decision


class RespondNotificationResponse(BaseModel):
    notification: NotificationResponse
    match: MatchResponse
