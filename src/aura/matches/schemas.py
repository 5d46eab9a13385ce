"""Pydantic schemas for match endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from aura.db.models import MAX_SCORE

MatchStatus = Literal["pending_player2", "confirmed", "rejected_by_player2"]
Decision = Literal["confirm", "reject"]


class CreateMatchRequest(BaseModel):
    """Player 1 reports a finished game against ``opponent_id``."""

    opponent_id: str = Field(..., min_length=1, max_length=128)
    my_score: int = Field(..., ge=0, le=MAX_SCORE)
    opponent_score: int = Field(..., ge=0, le=MAX_SCORE)


class ResolveMatchRequest(BaseModel):
    decision: Decision


class MatchResponse(BaseModel):
    id: str
    player1_id: str
    player2_id: str
    player1_name: str
    player2_name: str
    player1_score: int
    player2_score: int
    status: MatchStatus
    winner_id: str | None = None
    recap: str | None = None
    created_at: datetime
    confirmed_at: datetime | None = None


class MatchListResponse(BaseModel):
    matches: list[MatchResponse]
    total: int
