"""Initial schema: users, friendships, friend requests, matches, notifications.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id VARCHAR(128) PRIMARY KEY,
            handle VARCHAR(20) NOT NULL UNIQUE,
            email VARCHAR(320),
            display_name VARCHAR(64),
            aura INTEGER NOT NULL DEFAULT 0,
            avatar_url TEXT,
            banner_url TEXT,
            description VARCHAR(500),
            is_certified_hooper BOOLEAN NOT NULL DEFAULT false,
            is_cosmic_marshall BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_users_email ON users(email)")

    # --- Friendships (one row per direction) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS friendships (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(128) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            friend_id VARCHAR(128) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_friendships_pair UNIQUE (user_id, friend_id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_friendships_user_id ON friendships(user_id)")

    # --- Friend requests ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS friend_requests (
            id VARCHAR(36) PRIMARY KEY,
            from_user_id VARCHAR(128) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            to_user_id VARCHAR(128) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            pair_key VARCHAR(257) NOT NULL UNIQUE,
            status VARCHAR(16) NOT NULL DEFAULT 'pending',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            responded_at TIMESTAMPTZ,
            CONSTRAINT ck_friend_requests_status CHECK (status IN ('pending', 'accepted', 'declined'))
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_friend_requests_from_user_id ON friend_requests(from_user_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_friend_requests_to_status ON friend_requests(to_user_id, status)")

    # --- Matches ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS matches (
            id VARCHAR(36) PRIMARY KEY,
            player1_id VARCHAR(128) NOT NULL REFERENCES users(id),
            player2_id VARCHAR(128) NOT NULL REFERENCES users(id),
            player1_name VARCHAR(64) NOT NULL,
            player2_name VARCHAR(64) NOT NULL,
            player1_score INTEGER NOT NULL,
            player2_score INTEGER NOT NULL,
            status VARCHAR(24) NOT NULL DEFAULT 'pending_player2',
            winner_id VARCHAR(128) REFERENCES users(id),
            recap TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            confirmed_at TIMESTAMPTZ,
            resolved_at TIMESTAMPTZ,
            CONSTRAINT ck_matches_status CHECK (status IN ('pending_player2', 'confirmed', 'rejected_by_player2')),
            CONSTRAINT ck_matches_scores_non_negative CHECK (player1_score >= 0 AND player2_score >= 0),
            CONSTRAINT ck_matches_no_tie CHECK (player1_score <> player2_score)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_matches_player1_status ON matches(player1_id, status)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_matches_player2_status ON matches(player2_id, status)")

    # --- Notifications ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS notifications (
            id VARCHAR(36) PRIMARY KEY,
            user_id VARCHAR(128) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            type VARCHAR(32) NOT NULL,
            message TEXT NOT NULL,
            related_id VARCHAR(128),
            is_read BOOLEAN NOT NULL DEFAULT false,
            sender_id VARCHAR(128),
            sender_name VARCHAR(64),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_notifications_type CHECK (type IN (
                'match_invite', 'match_confirmed', 'match_rejected',
                'recap_ready', 'friend_request', 'friend_accepted'
            ))
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_notifications_user_created ON notifications(user_id, created_at)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS notifications")
    op.execute("DROP TABLE IF EXISTS matches")
    op.execute("DROP TABLE IF EXISTS friend_requests")
    op.execute("DROP TABLE IF EXISTS friendships")
    op.execute("DROP TABLE IF EXISTS users")
