"""Friendship workflow.

Rules:
- One friend request per pair of users, ever, in either direction
- No request between users who are already friends
- Only the recipient answers a request, and only while it is pending
- Accepting writes both friendship directions in the same transaction as the status change

The duplicate checks read before writing; the unique ``pair_key`` and the
unique friendship pair turn a lost race into ConflictError instead of a
duplicate row.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from aura.db.models import (
    REQUEST_ACCEPTED,
    REQUEST_DECLINED,
    REQUEST_PENDING,
    FriendRequest,
    Friendship,
    User,
    friend_pair_key,
)
from aura.errors import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from aura.social.notification_service import notify

logger = logging.getLogger(__name__)


async def are_friends(db: AsyncSession, user_id: str, other_id: str) -> bool:
    result = await db.execute(
        select(Friendship.id).where(
            Friendship.user_id == user_id,
            Friendship.friend_id == other_id,
        )
    )
    return result.first() is not None


async def get_friend_ids(db: AsyncSession, user_id: str) -> list[str]:
    """The user's friend-id set."""
    result = await db.execute(
        select(Friendship.friend_id)
        .where(Friendship.user_id == user_id)
        .order_by(Friendship.created_at)
    )
    return [row[0] for row in result.all()]


async def list_friends(db: AsyncSession, user_id: str) -> list[User]:
    """Friend profiles, ordered by handle."""
    result = await db.execute(
        select(User)
        .join(Friendship, Friendship.friend_id == User.id)
        .where(Friendship.user_id == user_id)
        .order_by(User.handle)
    )
    return list(result.scalars().all())


async def find_request_between(db: AsyncSession, user_id: str, other_id: str) -> FriendRequest | None:
    """Any request between the two users, whichever direction and status."""
    result = await db.execute(
        select(FriendRequest).where(
            or_(
                (FriendRequest.from_user_id == user_id) & (FriendRequest.to_user_id == other_id),
                (FriendRequest.from_user_id == other_id) & (FriendRequest.to_user_id == user_id),
            )
        )
    )
    return result.scalars().first()


async def send_friend_request(db: AsyncSession, sender: User, target_id: str) -> FriendRequest:
    """
    Send a friend request to ``target_id``.

    Raises:
        ValidationError: Sending a request to yourself.
        NotFoundError: The target has no profile.
        ConflictError: A request already exists between the two users, or they are friends.
    """
    if target_id == sender.id:
        raise ValidationError("You cannot send a friend request to yourself")

    target = await db.get(User, target_id)
    if target is None:
        raise NotFoundError("User not found")

    if await find_request_between(db, sender.id, target_id) is not None:
        raise ConflictError("A friend request already exists or is pending with this user")
    if await are_friends(db, sender.id, target_id):
        raise ConflictError("You are already friends with this user")

    request = FriendRequest(
        from_user_id=sender.id,
        to_user_id=target_id,
        pair_key=friend_pair_key(sender.id, target_id),
        status=REQUEST_PENDING,
        created_at=datetime.now(timezone.utc),
    )
    db.add(request)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("A friend request already exists or is pending with this user") from e

    logger.info("Friend request %s sent: %s -> %s", request.id, sender.id, target_id)
    notification = await notify(
        db,
        target_id,
        "friend_request",
        f"{sender.name} sent you a friend request.",
        related_id=sender.id,
        sender_id=sender.id,
        sender_name=sender.name,
    )
    if notification is None:
        await db.refresh(request)
    return request


async def get_friend_request(db: AsyncSession, request_id: str) -> FriendRequest:
    result = await db.execute(
        select(FriendRequest)
        .where(FriendRequest.id == request_id)
        .execution_options(populate_existing=True)
    )
    request = result.scalar_one_or_none()
    if request is None:
        raise NotFoundError("Friend request not found")
    return request


async def _add_friendship(db: AsyncSession, user_id: str, friend_id: str, now: datetime) -> None:
    if not await are_friends(db, user_id, friend_id):
        db.add(Friendship(user_id=user_id, friend_id=friend_id, created_at=now))


async def respond_to_friend_request(
    db: AsyncSession,
    request_id: str,
    responder: User,
    accept: bool,
) -> FriendRequest:
    """
    Accept or decline a pending friend request addressed to ``responder``.

    Raises:
        NotFoundError: No such request.
        PermissionDeniedError: The responder is not the recipient.
        InvalidStateError: The request was already answered.
    """
    request = await get_friend_request(db, request_id)
    if request.to_user_id != responder.id:
        raise PermissionDeniedError("Only the recipient can respond to this friend request")
    if request.status != REQUEST_PENDING:
        raise InvalidStateError(f"Friend request already {request.status}")

    now = datetime.now(timezone.utc)
    new_status = REQUEST_ACCEPTED if accept else REQUEST_DECLINED
    result = await db.execute(
        update(FriendRequest)
        .where(FriendRequest.id == request.id, FriendRequest.status == REQUEST_PENDING)
        .values(status=new_status, responded_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvalidStateError("Friend request already answered")

    if accept:
        await _add_friendship(db, responder.id, request.from_user_id, now)
        await _add_friendship(db, request.from_user_id, responder.id, now)

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("Friendship was created concurrently") from e

    await db.refresh(request)
    logger.info("Friend request %s %s by %s", request.id, new_status, responder.id)

    if accept:
        notification = await notify(
            db,
            request.from_user_id,
            "friend_accepted",
            f"{responder.name} accepted your friend request!",
            related_id=responder.id,
            sender_id=responder.id,
            sender_name=responder.name,
        )
        if notification is None:
            await db.refresh(request)
    return request


async def list_incoming_requests(db: AsyncSession, user_id: str) -> list[tuple[FriendRequest, User]]:
    """Pending requests addressed to the user, with the sender's profile."""
    result = await db.execute(
        select(FriendRequest, User)
        .join(User, User.id == FriendRequest.from_user_id)
        .where(FriendRequest.to_user_id == user_id, FriendRequest.status == REQUEST_PENDING)
        .order_by(FriendRequest.created_at.desc())
    )
    return [(row[0], row[1]) for row in result.all()]


async def list_sent_requests(db: AsyncSession, user_id: str) -> list[tuple[FriendRequest, User]]:
    """Requests the user has sent, any status, with the recipient's profile."""
    result = await db.execute(
        select(FriendRequest, User)
        .join(User, User.id == FriendRequest.to_user_id)
        .where(FriendRequest.from_user_id == user_id)
        .order_by(FriendRequest.created_at.desc())
    )
    return [(row[0], row[1]) for row in result.all()]
