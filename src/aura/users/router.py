"""User profile router: all /api/v1/users/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from aura.auth.dependencies import Identity, get_current_user, get_identity
from aura.database import get_session
from aura.db.models import User
from aura.matches.router import build_match_response
from aura.matches.schemas import MatchListResponse
from aura.matches.service import head_to_head, list_confirmed_matches
from aura.social.friends_service import get_friend_ids
from aura.users.schemas import (
    BadgesResponse,
    HeadToHeadResponse,
    ProfileUpdateRequest,
    PublicUserResponse,
    RegisterProfileRequest,
    UserResponse,
    UserSearchResponse,
)
from aura.users.service import get_user, register_profile, search_users, update_profile

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


def build_public_user(user: User) -> PublicUserResponse:
    """Build a PublicUserResponse from a User model."""
    return PublicUserResponse(
        id=user.id,
        handle=user.handle,
        display_name=user.display_name,
        aura=user.aura,
        avatar_url=user.avatar_url,
        banner_url=user.banner_url,
        description=user.description,
        badges=BadgesResponse(
            certified_hooper=user.is_certified_hooper,
            cosmic_marshall=user.is_cosmic_marshall,
        ),
        created_at=user.created_at,
    )


async def _user_response(db: AsyncSession, user: User) -> UserResponse:
    public = build_public_user(user)
    return UserResponse(
        **public.model_dump(),
        email=user.email,
        friend_ids=await get_friend_ids(db, user.id),
    )


# ---------------------------------------------------------------------------
# Own profile
# ---------------------------------------------------------------------------


@router.post("", response_model=UserResponse, status_code=201)
async def register_profile_endpoint(
    body: RegisterProfileRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Create the profile for the signed-in identity."""
    user = await register_profile(db, identity, body.handle, body.display_name)
    return await _user_response(db, user)


@router.get("/me", response_model=UserResponse)
async def get_profile(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Get own full profile."""
    return await _user_response(db, user)


@router.patch("/me", response_model=UserResponse)
async def update_my_profile(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Update profile (handle, display_name, avatar_url, banner_url, description)."""
    user = await update_profile(
        db,
        user,
        handle=body.handle,
        display_name=body.display_name,
        avatar_url=body.avatar_url,
        banner_url=body.banner_url,
        description=body.description,
    )
    return await _user_response(db, user)


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


@router.get("/search", response_model=UserSearchResponse)
async def search_users_endpoint(
    q: str = Query(..., min_length=1, max_length=320),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserSearchResponse:
    """Search by exact email or handle prefix."""
    users = await search_users(db, q, exclude_id=user.id)
    return UserSearchResponse(users=[build_public_user(u) for u in users])


# ---------------------------------------------------------------------------
# Public profile
# ---------------------------------------------------------------------------


@router.get("/{user_id}", response_model=PublicUserResponse)
async def get_public_profile_endpoint(
    user_id: str,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> PublicUserResponse:
    """Get another player's public profile."""
    return build_public_user(await get_user(db, user_id))


@router.get("/{user_id}/matches", response_model=MatchListResponse)
async def get_match_history(
    user_id: str,
    limit: int | None = Query(None, ge=1, le=100),
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MatchListResponse:
    """Confirmed match history, newest first. Pass ``limit`` for a dashboard view."""
    await get_user(db, user_id)
    matches = await list_confirmed_matches(db, user_id, limit=limit)
    return MatchListResponse(
        matches=[build_match_response(m) for m in matches],
        total=len(matches),
    )


@router.get("/{user_id}/head-to-head", response_model=HeadToHeadResponse)
async def get_head_to_head(
    user_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> HeadToHeadResponse:
    """Confirmed record between the current user and ``user_id``."""
    await get_user(db, user_id)
    h2h = await head_to_head(db, user.id, user_id)
    win_rate = h2h.user_wins / h2h.total_played if h2h.total_played else 0.0
    return HeadToHeadResponse(
        user_id=h2h.user_id,
        other_id=h2h.other_id,
        user_wins=h2h.user_wins,
        other_wins=h2h.other_wins,
        total_played=h2h.total_played,
        user_win_rate=round(win_rate, 4),
    )

