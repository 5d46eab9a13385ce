"""Service tests: confirming and rejecting matches, Aura awards and recaps."""

from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from aura.db.models import Notification
from aura.errors import InvalidStateError, NotFoundError, PermissionDeniedError, ValidationError
from aura.matches.resolution import attach_recap, resolve_match
from aura.matches.service import create_match


async def _notifications_for(db, user_id: str, type_: str) -> list[Notification]:
    result = await db.execute(
        select(Notification).where(Notification.user_id == user_id, Notification.type == type_)
    )
    return list(result.scalars().all())


class TestConfirm:
    """A reports 11-7 against B, B confirms."""

    async def test_confirm_awards_aura(self, db_session, alice, bob, recap_service):
        match = await create_match(db_session, alice, bob.id, 11, 7)

        resolved = await resolve_match(db_session, match.id, bob, "confirm", recap_service)

        assert resolved.status == "confirmed"
        assert resolved.winner_id == alice.id
        assert resolved.confirmed_at is not None
        assert alice.aura == 10
        assert bob.aura == -5

    async def test_confirm_attaches_recap_and_notifies_reporter(self, db_session, alice, bob, recap_service):
        match = await create_match(db_session, alice, bob.id, 11, 7)

        resolved = await resolve_match(db_session, match.id, bob, "confirm", recap_service)

        assert resolved.recap == "Epic clash: Alice 11 - 7 Bob"
        assert recap_service.calls == [("Alice", "Bob", 11, 7)]
        ready = await _notifications_for(db_session, alice.id, "recap_ready")
        assert len(ready) == 1
        assert ready[0].related_id == match.id
        assert ready[0].sender_id == bob.id

    async def test_player2_can_be_the_winner(self, db_session, alice, bob, recap_service):
        match = await create_match(db_session, alice, bob.id, 4, 21)

        resolved = await resolve_match(db_session, match.id, bob, "confirm", recap_service)

        assert resolved.winner_id == bob.id
        assert bob.aura == 10
        assert alice.aura == -5

    async def test_aura_accumulates_and_goes_negative(self, db_session, alice, bob, recap_service):
        for _ in range(3):
            match = await create_match(db_session, alice, bob.id, 11, 7)
            await resolve_match(db_session, match.id, bob, "confirm", recap_service)

        assert alice.aura == 30
        assert bob.aura == -15

    async def test_confirm_twice_awards_once(self, db_session, alice, bob, recap_service):
        match = await create_match(db_session, alice, bob.id, 11, 7)
        await resolve_match(db_session, match.id, bob, "confirm", recap_service)

        with pytest.raises(InvalidStateError):
            await resolve_match(db_session, match.id, bob, "confirm", recap_service)

        await db_session.refresh(alice)
        await db_session.refresh(bob)
        assert alice.aura == 10
        assert bob.aura == -5

    async def test_recap_failure_keeps_confirmation(self, db_session, alice, bob, recap_service):
        recap_service.fail = True
        match = await create_match(db_session, alice, bob.id, 11, 7)

        resolved = await resolve_match(db_session, match.id, bob, "confirm", recap_service)

        assert resolved.status == "confirmed"
        assert resolved.recap is None
        assert alice.aura == 10
        assert bob.aura == -5
        assert len(await _notifications_for(db_session, alice.id, "match_confirmed")) == 1
        assert await _notifications_for(db_session, alice.id, "recap_ready") == []

    async def test_stale_pending_read_awards_once(self, db_session, alice, bob, recap_service, monkeypatch):
        match = await create_match(db_session, alice, bob.id, 11, 7)
        await resolve_match(db_session, match.id, bob, "confirm", recap_service)
        # Let a second confirm through the status check, as if it read the match before the first committed
        monkeypatch.setattr("aura.matches.resolution.validate_transition", lambda current, target: None)

        with pytest.raises(InvalidStateError, match="already been resolved"):
            await resolve_match(db_session, match.id, bob, "confirm", recap_service)

        assert alice.aura == 10
        assert bob.aura == -5
        await db_session.refresh(alice)
        await db_session.refresh(bob)
        assert alice.aura == 10
        assert bob.aura == -5

    async def test_recap_write_failure_keeps_confirmation(self, db_session, alice, bob, recap_service, monkeypatch):
        async def broken_attach(db, match_id, service):
            raise OperationalError("UPDATE matches", {}, Exception("disk I/O error"))

        monkeypatch.setattr("aura.matches.resolution.attach_recap", broken_attach)
        match = await create_match(db_session, alice, bob.id, 11, 7)

        resolved = await resolve_match(db_session, match.id, bob, "confirm", recap_service)

        assert resolved.status == "confirmed"
        assert resolved.winner_id == alice.id
        assert resolved.recap is None
        assert alice.aura == 10
        assert bob.aura == -5
        assert len(await _notifications_for(db_session, alice.id, "match_confirmed")) == 1


class TestReject:

    async def test_reject_leaves_aura(self, db_session, alice, bob, recap_service):
        match = await create_match(db_session, alice, bob.id, 11, 7)

        resolved = await resolve_match(db_session, match.id, bob, "reject", recap_service)

        assert resolved.status == "rejected_by_player2"
        assert resolved.winner_id is None
        assert resolved.recap is None
        await db_session.refresh(alice)
        await db_session.refresh(bob)
        assert alice.aura == 0
        assert bob.aura == 0
        assert recap_service.calls == []

    async def test_reject_notifies_reporter(self, db_session, alice, bob, recap_service):
        match = await create_match(db_session, alice, bob.id, 11, 7)
        await resolve_match(db_session, match.id, bob, "reject", recap_service)

        rejected = await _notifications_for(db_session, alice.id, "match_rejected")
        assert len(rejected) == 1
        assert "Bob rejected the scores" in rejected[0].message

    async def test_rejected_is_final(self, db_session, alice, bob, recap_service):
        match = await create_match(db_session, alice, bob.id, 11, 7)
        await resolve_match(db_session, match.id, bob, "reject", recap_service)

        with pytest.raises(InvalidStateError):
            await resolve_match(db_session, match.id, bob, "confirm", recap_service)


class TestDecider:

    async def test_reporter_cannot_confirm(self, db_session, alice, bob, recap_service):
        match = await create_match(db_session, alice, bob.id, 11, 7)
        with pytest.raises(PermissionDeniedError):
            await resolve_match(db_session, match.id, alice, "confirm", recap_service)

    async def test_outsider_cannot_confirm(self, db_session, alice, bob, carol, recap_service):
        match = await create_match(db_session, alice, bob.id, 11, 7)
        with pytest.raises(PermissionDeniedError):
            await resolve_match(db_session, match.id, carol, "confirm", recap_service)

        await db_session.refresh(alice)
        assert alice.aura == 0

    async def test_unknown_decision(self, db_session, alice, bob, recap_service):
        match = await create_match(db_session, alice, bob.id, 11, 7)
        with pytest.raises(ValidationError):
            await resolve_match(db_session, match.id, bob, "maybe", recap_service)

    async def test_unknown_match(self, db_session, bob, recap_service):
        with pytest.raises(NotFoundError):
            await resolve_match(db_session, "missing", bob, "confirm", recap_service)


class TestAttachRecap:

    async def test_retry_after_failure(self, db_session, alice, bob, recap_service):
        recap_service.fail = True
        match = await create_match(db_session, alice, bob.id, 11, 7)
        await resolve_match(db_session, match.id, bob, "confirm", recap_service)

        recap_service.fail = False
        updated = await attach_recap(db_session, match.id, recap_service)

        assert updated.recap == "Epic clash: Alice 11 - 7 Bob"
        assert alice.aura == 10

    async def test_existing_recap_kept(self, db_session, alice, bob, recap_service):
        match = await create_match(db_session, alice, bob.id, 11, 7)
        await resolve_match(db_session, match.id, bob, "confirm", recap_service)

        again = await attach_recap(db_session, match.id, recap_service)

        assert again.recap == "Epic clash: Alice 11 - 7 Bob"
        assert len(recap_service.calls) == 1

    async def test_pending_match_has_no_recap(self, db_session, alice, bob, recap_service):
        match = await create_match(db_session, alice, bob.id, 11, 7)
        with pytest.raises(InvalidStateError):
            await attach_recap(db_session, match.id, recap_service)
        assert recap_service.calls == []
