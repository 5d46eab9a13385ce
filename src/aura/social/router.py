"""Friends router: friend list and friend requests."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from aura.auth.dependencies import get_current_user
from aura.database import get_session
from aura.db.models import FriendRequest, User
from aura.social.friends_service import (
    list_friends,
    list_incoming_requests,
    list_sent_requests,
    respond_to_friend_request,
    send_friend_request,
)
from aura.social.schemas import (
    FriendListResponse,
    FriendRequestListResponse,
    FriendRequestResponse,
    RespondFriendRequest,
    SendFriendRequest,
)
from aura.users.router import build_public_user

router = APIRouter(prefix="/api/v1/friends", tags=["Friends"])


def _request_response(request: FriendRequest, other: User | None = None) -> FriendRequestResponse:
    return FriendRequestResponse(
        id=request.id,
        from_user_id=request.from_user_id,
        to_user_id=request.to_user_id,
        status=request.status,
        created_at=request.created_at,
        responded_at=request.responded_at,
        other_user=build_public_user(other) if other is not None else None,
    )


@router.get("", response_model=FriendListResponse)
async def get_friends(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> FriendListResponse:
    """Friend profiles, ordered by handle."""
    friends = await list_friends(db, user.id)
    return FriendListResponse(friends=[build_public_user(f) for f in friends])


@router.get("/requests", response_model=FriendRequestListResponse)
async def get_incoming_requests(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> FriendRequestListResponse:
    """Pending requests addressed to the current user."""
    rows = await list_incoming_requests(db, user.id)
    return FriendRequestListResponse(requests=[_request_response(r, sender) for r, sender in rows])


@router.get("/requests/sent", response_model=FriendRequestListResponse)
async def get_sent_requests(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> FriendRequestListResponse:
    """Requests the current user has sent, with their status."""
    rows = await list_sent_requests(db, user.id)
    return FriendRequestListResponse(requests=[_request_response(r, target) for r, target in rows])


@router.post("/requests", response_model=FriendRequestResponse, status_code=201)
async def send_request(
    body: SendFriendRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> FriendRequestResponse:
    request = await send_friend_request(db, user, body.user_id)
    target = await db.get(User, request.to_user_id)
    return _request_response(request, target)


@router.post("/requests/{request_id}/respond", response_model=FriendRequestResponse)
async def respond_request(
    request_id: str,
    body: RespondFriendRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> FriendRequestResponse:
    """Accept or decline a pending request addressed to the current user."""
    request = await respond_to_friend_request(db, request_id, user, body.accept)
    sender = await db.get(User, request.from_user_id)
    return _request_response(request, sender)
