"""Request/response schemas for user endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class RegisterProfileRequest(BaseModel):
    """Create the profile for the authenticated identity."""

    handle: str = Field(..., max_length=64)
    display_name: str | None = Field(None, max_length=64)


class ProfileUpdateRequest(BaseModel):
    """Partial profile update. Empty strings clear optional fields."""

    handle: str | None = Field(None, max_length=64)
    display_name: str | None = Field(None, max_length=64)
    avatar_url: str | None = Field(None, max_length=2048)
    banner_url: str | None = Field(None, max_length=2048)
    description: str | None = Field(None, max_length=500)


class BadgesResponse(BaseModel):
    certified_hooper: bool
    cosmic_marshall: bool


class PublicUserResponse(BaseModel):
    """Profile as other players see it."""

    id: str
    handle: str
    display_name: str | None = None
    aura: int
    avatar_url: str | None = None
    banner_url: str | None = None
    description: str | None = None
    badges: BadgesResponse
    created_at: datetime


class UserResponse(PublicUserResponse):
    """Own profile, including private fields."""

    email: str | None = None
    friend_ids: list[str] = []


class UserSearchResponse(BaseModel):
    users: list[PublicUserResponse]


class HeadToHeadResponse(BaseModel):
    user_id: str
    other_id: str
    user_wins: int
    other_wins: int
    total_played: int
    user_win_rate: float
