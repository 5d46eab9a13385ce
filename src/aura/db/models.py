"""ORM models for users, friendships, friend requests, matches and notifications.

Identifiers are opaque strings: user ids come from the identity provider,
everything else is a server-generated UUID4. Status and type columns carry
CHECK constraints so the stored shapes stay within their tagged sets.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from aura.db.base import Base

MATCH_PENDING = "pending_player2"
MATCH_CONFIRMED = "confirmed"
MATCH_REJECTED = "rejected_by_player2"
MATCH_STATUSES = (MATCH_PENDING, MATCH_CONFIRMED, MATCH_REJECTED)

# Largest value the INTEGER score columns hold
MAX_SCORE = 2_147_483_647

REQUEST_PENDING = "pending"
REQUEST_ACCEPTED = "accepted"
REQUEST_DECLINED = "declined"
REQUEST_STATUSES = (REQUEST_PENDING, REQUEST_ACCEPTED, REQUEST_DECLINED)

NOTIFICATION_TYPES = (
    "match_invite",
    "match_confirmed",
    "match_rejected",
    "recap_ready",
    "friend_request",
    "friend_accepted",
)


def _new_id() -> str:
    return str(uuid.uuid4())


def _in_clause(column: str, values: tuple[str, ...]) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """User profile keyed by the identity provider's subject id."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    handle: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True, index=True)
    display_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    aura: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    banner_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_certified_hooper: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    is_cosmic_marshall: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    @property
    def name(self) -> str:
        """Name shown to other players: display name, falling back to the handle."""
        return self.display_name or self.handle


class Friendship(Base):
    """One direction of a friendship. Accepting a request writes both directions."""

    __tablename__ = "friendships"
    __table_args__ = (UniqueConstraint("user_id", "friend_id", name="uq_friendships_pair"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    friend_id: Mapped[str] = mapped_column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class FriendRequest(Base):
    """Directed friend request. ``pair_key`` allows one request per unordered pair."""

    __tablename__ = "friend_requests"
    __table_args__ = (
        CheckConstraint(_in_clause("status", REQUEST_STATUSES), name="ck_friend_requests_status"),
        Index("ix_friend_requests_to_status", "to_user_id", "status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    from_user_id: Mapped[str] = mapped_column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    to_user_id: Mapped[str] = mapped_column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    pair_key: Mapped[str] = mapped_column(String(257), unique=True, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=REQUEST_PENDING, server_default=REQUEST_PENDING)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


def friend_pair_key(user_a: str, user_b: str) -> str:
    """Order-independent key for a pair of users."""
    first, second = sorted((user_a, user_b))
    return f"{first}:{second}"


# ---------------------------------------------------------------------------
# Matches
# ---------------------------------------------------------------------------


class Match(Base):
    """A reported 1v1 game. Player 1 reports, player 2 confirms or rejects."""

    __tablename__ = "matches"
    __table_args__ = (
        CheckConstraint(_in_clause("status", MATCH_STATUSES), name="ck_matches_status"),
        CheckConstraint("player1_score >= 0 AND player2_score >= 0", name="ck_matches_scores_non_negative"),
        CheckConstraint("player1_score <> player2_score", name="ck_matches_no_tie"),
        Index("ix_matches_player1_status", "player1_id", "status"),
        Index("ix_matches_player2_status", "player2_id", "status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    player1_id: Mapped[str] = mapped_column(String(128), ForeignKey("users.id"), nullable=False)
    player2_id: Mapped[str] = mapped_column(String(128), ForeignKey("users.id"), nullable=False)
    player1_name: Mapped[str] = mapped_column(String(64), nullable=False)
    player2_name: Mapped[str] = mapped_column(String(64), nullable=False)
    player1_score: Mapped[int] = mapped_column(Integer, nullable=False)
    player2_score: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(24), nullable=False, default=MATCH_PENDING, server_default=MATCH_PENDING)
    winner_id: Mapped[str | None] = mapped_column(String(128), ForeignKey("users.id"), nullable=True)
    recap: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.player1_id, self.player2_id)

    def higher_scorer(self) -> tuple[str, str]:
        """Return (winner_id, loser_id). Scores are never equal."""
        if self.player1_score > self.player2_score:
            return self.player1_id, self.player2_id
        return self.player2_id, self.player1_id


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class Notification(Base):
    """Per-recipient notification created as a side effect of a state change."""

    __tablename__ = "notifications"
    __table_args__ = (
        CheckConstraint(_in_clause("type", NOTIFICATION_TYPES), name="ck_notifications_type"),
        Index("ix_notifications_user_created", "user_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    related_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    sender_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    sender_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
