"""Match router: report, review and resolve 1v1 matches."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from aura.auth.dependencies import get_current_user
from aura.database import get_session
from aura.db.models import Match, User
from aura.dependencies import get_recap_service
from aura.matches.recap_service import RecapService
from aura.matches.resolution import attach_recap, resolve_match
from aura.matches.schemas import (
    CreateMatchRequest,
    MatchListResponse,
    MatchResponse,
    ResolveMatchRequest,
)
from aura.matches.service import (
    create_match,
    get_match_for_participant,
    list_pending_matches,
)

router = APIRouter(prefix="/api/v1/matches", tags=["Matches"])


def build_match_response(match: Match) -> MatchResponse:
    """Build a MatchResponse from a Match model."""
    return MatchResponse(
        id=match.id,
        player1_id=match.player1_id,
        player2_id=match.player2_id,
        player1_name=match.player1_name,
        player2_name=match.player2_name,
        player1_score=match.player1_score,
        player2_score=match.player2_score,
        status=match.status,
        winner_id=match.winner_id,
        recap=match.recap,
        created_at=match.created_at,
        confirmed_at=match.confirmed_at,
    )


@router.post("", response_model=MatchResponse, status_code=201)
async def report_match(
    body: CreateMatchRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MatchResponse:
    """Report a finished game. The opponent is asked to confirm the score."""
    match = await create_match(db, user, body.opponent_id, body.my_score, body.opponent_score)
    return build_match_response(match)


@router.get("/pending", response_model=MatchListResponse)
async def get_pending_matches(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MatchListResponse:
    """Matches waiting for the current user's confirmation."""
    matches = await list_pending_matches(db, user.id)
    return MatchListResponse(
        matches=[build_match_response(m) for m in matches],
        total=len(matches),
    )


@router.get("/{match_id}", response_model=MatchResponse)
async def get_match_endpoint(
    match_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MatchResponse:
    match = await get_match_for_participant(db, match_id, user.id)
    return build_match_response(match)


@router.post("/{match_id}/resolve", response_model=MatchResponse)
async def resolve_match_endpoint(
    match_id: str,
    body: ResolveMatchRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    recap_service: RecapService = Depends(get_recap_service),
) -> MatchResponse:
    """Confirm or reject a pending match as player 2."""
    match = await resolve_match(db, match_id, user, body.decision, recap_service)
    return build_match_response(match)


@router.post("/{match_id}/recap", response_model=MatchResponse)
async def generate_recap_endpoint(
    match_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    recap_service: RecapService = Depends(get_recap_service),
) -> MatchResponse:
    """Generate the recap of a confirmed match that has none yet."""
    await get_match_for_participant(db, match_id, user.id)
    match = await attach_recap(db, match_id, recap_service)
    return build_match_response(match)
