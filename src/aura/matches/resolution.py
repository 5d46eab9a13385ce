"""Match confirmation transaction.

State progression: pending_player2 -> confirmed | rejected_by_player2
Both outcomes are terminal. Only player 2 may resolve a match.

On confirm, the match update and both Aura updates commit together. The
match update is conditional on the stored status still being
pending_player2, so two racing resolutions cannot both award Aura. Recap
generation and the notification to player 1 run after the commit and never
undo it.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from aura.config import get_settings
from aura.db.models import MATCH_CONFIRMED, MATCH_PENDING, MATCH_REJECTED, Match, User
from aura.errors import (
    ExternalServiceError,
    InvalidStateError,
    PermissionDeniedError,
    ValidationError,
)
from aura.matches.recap_service import RecapService
from aura.matches.service import get_match
from aura.social.notification_service import notify

logger = structlog.get_logger()

VALID_TRANSITIONS: dict[str, list[str]] = {
    MATCH_PENDING: [MATCH_CONFIRMED, MATCH_REJECTED],
    MATCH_CONFIRMED: [],
    MATCH_REJECTED: [],
}

DECISIONS: dict[str, str] = {
    "confirm": MATCH_CONFIRMED,
    "reject": MATCH_REJECTED,
}


def validate_transition(current_status: str, target_status: str) -> None:
    """Validate a match state transition. Raises InvalidStateError if invalid."""
    valid = VALID_TRANSITIONS.get(current_status, [])
    if target_status not in valid:
        raise InvalidStateError(
            f"Invalid transition: {current_status} -> {target_status}. "
            f"Valid transitions: {valid}"
        )


async def _apply_aura_delta(db: AsyncSession, user_id: str, delta: int) -> None:
    # Relative increment; no floor, Aura may go negative.
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(aura=User.aura + delta)
        .execution_options(synchronize_session=False)
    )


async def resolve_match(
    db: AsyncSession,
    match_id: str,
    decider: User,
    decision: str,
    recap_service: RecapService,
) -> Match:
    """
    Confirm or reject a pending match as player 2.

    Raises:
        ValidationError: Unknown decision.
        NotFoundError: No such match.
        PermissionDeniedError: The decider is not player 2.
        InvalidStateError: The match is no longer pending.
    """
    target = DECISIONS.get(decision)
    if target is None:
        raise ValidationError(f"Unknown decision '{decision}'. Use 'confirm' or 'reject'.")

    match = await get_match(db, match_id)
    if decider.id != match.player2_id:
        raise PermissionDeniedError("Only the opponent can confirm or reject this match")
    validate_transition(match.status, target)

    settings = get_settings()
    now = datetime.now(timezone.utc)
    values: dict[str, object] = {"status": target, "resolved_at": now}
    winner_id = loser_id = None
    if target == MATCH_CONFIRMED:
        winner_id, loser_id = match.higher_scorer()
        values.update(winner_id=winner_id, confirmed_at=now)

    try:
        result = await db.execute(
            update(Match)
            .where(Match.id == match.id, Match.status == MATCH_PENDING)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidStateError("Match has already been resolved")

        if winner_id is not None and loser_id is not None:
            await _apply_aura_delta(db, winner_id, settings.aura_win_delta)
            await _apply_aura_delta(db, loser_id, settings.aura_loss_delta)

        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise

    await db.refresh(match)
    if winner_id is not None and loser_id is not None:
        # Reload profiles already held by this session so callers see new Aura.
        await db.get(User, winner_id, populate_existing=True)
        await db.get(User, loser_id, populate_existing=True)

    if target == MATCH_REJECTED:
        logger.info("match_rejected", match_id=match.id, decider_id=decider.id)
        type_ = "match_rejected"
        message = f"{decider.name} rejected the scores. Please discuss and re-log."
    else:
        logger.info(
            "match_confirmed",
            match_id=match.id,
            winner_id=winner_id,
            loser_id=loser_id,
            win_delta=settings.aura_win_delta,
            loss_delta=settings.aura_loss_delta,
        )
        try:
            match = await attach_recap(db, match.id, recap_service)
        except ExternalServiceError:
            logger.warning("recap_deferred", match_id=match.id, exc_info=True)
        except SQLAlchemyError:
            logger.warning("recap_deferred", match_id=match.id, reason="write_failed", exc_info=True)
            await db.rollback()
            # rollback expired every instance; reload the match and both players
            await db.refresh(match)
            await db.get(User, winner_id, populate_existing=True)
            await db.get(User, loser_id, populate_existing=True)

        if match.recap:
            type_ = "recap_ready"
            message = f"Your match against {match.player2_name} is confirmed! Check out the epic recap."
        else:
            type_ = "match_confirmed"
            message = f"Your match against {match.player2_name} is confirmed!"

    notification = await notify(
        db,
        match.player1_id,
        type_,
        message,
        related_id=match.id,
        sender_id=decider.id,
        sender_name=decider.name,
    )
    if notification is None:
        await db.refresh(match)
    return match


async def attach_recap(db: AsyncSession, match_id: str, recap_service: RecapService) -> Match:
    """
    Generate and store the recap of a confirmed match if it has none.

    Safe to call repeatedly: an existing recap is returned unchanged.

    Raises:
        NotFoundError: No such match.
        InvalidStateError: The match is not confirmed.
        ExternalServiceError: The generator failed; nothing is written.
    """
    match = await get_match(db, match_id)
    if match.status != MATCH_CONFIRMED:
        raise InvalidStateError("Recaps are only generated for confirmed matches")
    if match.recap:
        return match

    text = await recap_service.generate_recap(
        match.player1_name,
        match.player2_name,
        match.player1_score,
        match.player2_score,
    )
    await db.execute(
        update(Match)
        .where(Match.id == match.id, Match.recap.is_(None))
        .values(recap=text)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    await db.refresh(match)
    logger.info("recap_attached", match_id=match.id)
    return match
