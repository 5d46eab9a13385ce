"""Service tests: profile registration, updates and search."""

from __future__ import annotations

import pytest

from aura.auth.dependencies import Identity
from aura.errors import ConflictError, NotFoundError, ValidationError
from aura.users.service import get_user, register_profile, search_users, update_profile


def _identity(user_id: str, email: str | None = None) -> Identity:
    return Identity(user_id=user_id, email=email, email_verified=True)


class TestRegisterProfile:

    async def test_register(self, db_session):
        user = await register_profile(db_session, _identity("uid-dan", "Dan@Example.com"), "Dan_23", "Dan")

        assert user.id == "uid-dan"
        assert user.handle == "dan_23"
        assert user.email == "dan@example.com"
        assert user.display_name == "Dan"
        assert user.aura == 0
        assert user.is_certified_hooper is False
        assert user.is_cosmic_marshall is False
        assert (await get_user(db_session, "uid-dan")).handle == "dan_23"

    async def test_handle_taken(self, db_session, alice):
        with pytest.raises(ConflictError, match="Handle already taken"):
            await register_profile(db_session, _identity("uid-dan"), "ALICE")

    async def test_profile_exists(self, db_session, alice):
        with pytest.raises(ConflictError, match="Profile already exists"):
            await register_profile(db_session, _identity(alice.id), "another")

    async def test_bad_handle(self, db_session):
        with pytest.raises(ValidationError):
            await register_profile(db_session, _identity("uid-dan"), "no spaces")

    async def test_get_missing_user(self, db_session):
        with pytest.raises(NotFoundError):
            await get_user(db_session, "uid-ghost")


class TestUpdateProfile:

    async def test_change_handle(self, db_session, alice):
        updated = await update_profile(db_session, alice, handle="Alice_B")
        assert updated.handle == "alice_b"

    async def test_keep_own_handle(self, db_session, alice):
        updated = await update_profile(db_session, alice, handle="alice", display_name="Ally")
        assert updated.handle == "alice"
        assert updated.display_name == "Ally"

    async def test_handle_conflict(self, db_session, alice, bob):
        with pytest.raises(ConflictError):
            await update_profile(db_session, alice, handle="bob")
        await db_session.refresh(alice)
        assert alice.handle == "alice"

    async def test_set_and_clear_optional_fields(self, db_session, alice):
        await update_profile(
            db_session,
            alice,
            avatar_url="https://img.example.com/a.png",
            banner_url="https://img.example.com/b.png",
            description="Left-handed shooter",
        )
        assert alice.description == "Left-handed shooter"

        await update_profile(db_session, alice, avatar_url="", description="")

        assert alice.avatar_url is None
        assert alice.description is None
        assert alice.banner_url == "https://img.example.com/b.png"

    async def test_aura_not_editable(self, db_session, alice):
        updated = await update_profile(db_session, alice, display_name="Alice A.")
        assert updated.aura == 0


class TestSearchUsers:

    async def test_exact_email(self, db_session, alice, bob):
        found = await search_users(db_session, "BOB@example.com", exclude_id=alice.id)
        assert [u.id for u in found] == [bob.id]

    async def test_email_is_not_prefix_matched(self, db_session, alice, bob):
        assert await search_users(db_session, "bob@example", exclude_id=alice.id) == []

    async def test_handle_prefix(self, db_session, make_user, alice):
        await make_user("uid-bo", "bo_jackson")
        await make_user("uid-bob", "bob")
        await make_user("uid-carl", "carl")

        found = await search_users(db_session, "bo", exclude_id=alice.id)

        assert [u.handle for u in found] == ["bo_jackson", "bob"]

    async def test_underscore_is_literal(self, db_session, make_user, alice):
        await make_user("uid-bo", "bo_jackson")
        await make_user("uid-box", "boxer")

        found = await search_users(db_session, "bo_", exclude_id=alice.id)

        assert [u.handle for u in found] == ["bo_jackson"]

    async def test_excludes_caller(self, db_session, alice):
        assert await search_users(db_session, "ali", exclude_id=alice.id) == []

    async def test_blank_query(self, db_session, alice):
        assert await search_users(db_session, "   ") == []
