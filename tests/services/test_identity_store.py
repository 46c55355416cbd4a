"""
Tests for the identity store data access layer.
"""

import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, patch

from sqlalchemy.exc import OperationalError

from app.core.exceptions import DuplicateKeyError, StoreUnavailableError
from app.services.identity_store import IdentityStore


@pytest.fixture
def store(db_session, clock) -> IdentityStore:
    return IdentityStore(db_session, clock=clock)


async def add_pending(store: IdentityStore, username: str, email: str, expiry):
    return await store.create_user(username, email, "hashed", "123456", expiry)


class TestUsers:
    """Tests for user records."""

    async def test_create_and_find(self, store, clock):
        user = await add_pending(store, "alice", "a@x.com", clock.now)

        assert (await store.find_by_username("alice")).id == user.id
        assert (await store.find_by_email("A@X.COM")).id == user.id
        assert (await store.find_by_email_or_username("alice")).id == user.id
        assert (await store.find_by_email_or_username("a@x.com")).id == user.id
        assert await store.find_by_username("nobody") is None

    async def test_duplicate_username_raises(self, store, clock):
        await add_pending(store, "alice", "a@x.com", clock.now)

        with pytest.raises(DuplicateKeyError):
            await add_pending(store, "alice", "b@x.com", clock.now)

        # The session stays usable after the failed insert
        assert await store.find_by_username("alice") is not None

    async def test_duplicate_email_raises(self, store, clock):
        await add_pending(store, "alice", "a@x.com", clock.now)

        with pytest.raises(DuplicateKeyError):
            await add_pending(store, "bob", "a@x.com", clock.now)

    async def test_driver_errors_become_store_unavailable(self, store, db_session):
        with patch.object(
            db_session,
            "execute",
            AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("gone"))),
        ):
            with pytest.raises(StoreUnavailableError):
                await store.find_by_username("alice")

    async def test_set_accepting_unknown_user(self, store):
        assert await store.set_accepting("missing-id", False) is False


class TestStaleRegistrations:
    """Tests for cleanup of never-verified accounts."""

    async def test_purge_only_stale_unverified(self, store, clock, make_user):
        await add_pending(store, "stale", "stale@x.com", clock.now - timedelta(days=2))
        await add_pending(store, "fresh", "fresh@x.com", clock.now + timedelta(hours=1))
        await make_user("verified", "verified@x.com")

        cutoff = clock.now - timedelta(days=1)
        assert await store.count_stale_unverified(cutoff) == 1

        deleted = await store.purge_stale_unverified(cutoff)

        assert deleted == 1
        assert await store.find_by_username("stale") is None
        assert await store.find_by_username("fresh") is not None
        assert await store.find_by_username("verified") is not None

    async def test_count_users(self, store, clock, make_user):
        await add_pending(store, "pending", "pending@x.com", clock.now)
        await make_user("verified", "verified@x.com")

        assert await store.count_users() == 2
        assert await store.count_users(verified=True) == 1
        assert await store.count_users(verified=False) == 1

    async def test_delete_user_removes_messages(self, store, test_user):
        user_id = test_user.id
        await store.append_message(user_id, "A message to be removed")

        await store.delete_user(user_id)

        assert await store.get_by_id(user_id) is None
        assert await store.count_messages(user_id) == 0


class TestInbox:
    """Tests for message rows."""

    async def test_append_and_remove(self, store, test_user):
        message = await store.append_message(test_user.id, "Hello there, friend")

        assert await store.count_messages(test_user.id) == 1
        assert await store.remove_message(test_user.id, message.id) is True
        assert await store.remove_message(test_user.id, message.id) is False

    async def test_remove_requires_owner(self, store, test_user, other_user):
        message = await store.append_message(other_user.id, "Hello there, friend")

        assert await store.remove_message(test_user.id, message.id) is False
        assert await store.count_messages(other_user.id) == 1

    async def test_count_since(self, store, clock, test_user):
        await store.append_message(test_user.id, "Older message")
        clock.advance(days=3)
        await store.append_message(test_user.id, "Newer message")

        assert await store.count_messages(test_user.id, since=clock.now - timedelta(days=1)) == 1
