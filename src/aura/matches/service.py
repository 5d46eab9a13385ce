"""Match record store: creation, lookup and history queries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from aura.db.models import MATCH_CONFIRMED, MATCH_PENDING, MAX_SCORE, Match, User
from aura.errors import NotFoundError, PermissionDeniedError, ValidationError
from aura.social.notification_service import notify

logger = structlog.get_logger()


@dataclass(frozen=True)
class HeadToHead:
    """Confirmed-match record between two users, from ``user_id``'s side."""

    user_id: str
    other_id: str
    user_wins: int
    other_wins: int
    total_played: int


def validate_scores(reporter_score: int, opponent_score: int) -> None:
    """Raise ValidationError unless both scores are in range and differ."""
    if reporter_score < 0 or opponent_score < 0:
        raise ValidationError("Scores must be non-negative")
    if reporter_score > MAX_SCORE or opponent_score > MAX_SCORE:
        raise ValidationError(f"Scores cannot exceed {MAX_SCORE}")
    if reporter_score == opponent_score:
        raise ValidationError("Scores cannot be tied. One player must win.")


async def create_match(
    db: AsyncSession,
    reporter: User,
    opponent_id: str,
    reporter_score: int,
    opponent_score: int,
) -> Match:
    """
    Report a match as player 1. The match waits for player 2 to confirm.

    Raises:
        ValidationError: Negative or tied scores, or reporting against yourself.
        NotFoundError: The opponent has no profile.
    """
    validate_scores(reporter_score, opponent_score)
    if opponent_id == reporter.id:
        raise ValidationError("You cannot report a match against yourself")

    opponent = await db.get(User, opponent_id)
    if opponent is None:
        raise NotFoundError("Opponent not found")

    match = Match(
        player1_id=reporter.id,
        player2_id=opponent.id,
        player1_name=reporter.name,
        player2_name=opponent.name,
        player1_score=reporter_score,
        player2_score=opponent_score,
        status=MATCH_PENDING,
        created_at=datetime.now(timezone.utc),
    )
    db.add(match)
    await db.commit()
    logger.info("match_reported", match_id=match.id, player1_id=reporter.id, player2_id=opponent.id)

    notification = await notify(
        db,
        opponent.id,
        "match_invite",
        f"{reporter.name} has logged a match with you. Please confirm.",
        related_id=match.id,
        sender_id=reporter.id,
        sender_name=reporter.name,
    )
    if notification is None:
        await db.refresh(match)
    return match


async def get_match(db: AsyncSession, match_id: str) -> Match:
    """Get a match by ID, always reading the stored row."""
    result = await db.execute(
        select(Match)
        .where(Match.id == match_id)
        .execution_options(populate_existing=True)
    )
    match = result.scalar_one_or_none()
    if match is None:
        raise NotFoundError(f"Match {match_id} not found")
    return match


async def get_match_for_participant(db: AsyncSession, match_id: str, user_id: str) -> Match:
    """Get a match the user played in. Outsiders get PermissionDeniedError."""
    match = await get_match(db, match_id)
    if not match.is_participant(user_id):
        raise PermissionDeniedError("You are not part of this match")
    return match


async def list_confirmed_matches(
    db: AsyncSession,
    user_id: str,
    limit: int | None = None,
) -> list[Match]:
    """Confirmed matches the user played in either seat, newest confirmation first."""
    q = (
        select(Match)
        .where(
            or_(Match.player1_id == user_id, Match.player2_id == user_id),
            Match.status == MATCH_CONFIRMED,
        )
        .order_by(Match.confirmed_at.desc(), Match.id)
    )
    if limit is not None:
        q = q.limit(limit)
    result = await db.execute(q)
    return list(result.scalars().unique().all())


async def list_pending_matches(db: AsyncSession, user_id: str) -> list[Match]:
    """Matches waiting for ``user_id`` to confirm or reject, oldest first."""
    result = await db.execute(
        select(Match)
        .where(Match.player2_id == user_id, Match.status == MATCH_PENDING)
        .order_by(Match.created_at)
    )
    return list(result.scalars().all())


async def head_to_head(db: AsyncSession, user_id: str, other_id: str) -> HeadToHead:
    """Count confirmed wins between two users across both seat orders."""
    result = await db.execute(
        select(Match.winner_id).where(
            Match.status == MATCH_CONFIRMED,
            or_(
                and_(Match.player1_id == user_id, Match.player2_id == other_id),
                and_(Match.player1_id == other_id, Match.player2_id == user_id),
            ),
        )
    )
    winners = [row[0] for row in result.all()]
    user_wins = sum(1 for w in winners if w == user_id)
    other_wins = sum(1 for w in winners if w == other_id)
    return HeadToHead(
        user_id=user_id,
        other_id=other_id,
        user_wins=user_wins,
        other_wins=other_wins,
        total_played=len(winners),
    )
