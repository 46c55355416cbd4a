"""
Database model tests.
Tests model creation, constraints and ordering columns.
"""

import pytest
from datetime import datetime, timezone
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.db.models import MessageModel, UserModel


def build_user(**overrides) -> UserModel:
    now = datetime.now(timezone.utc)
    fields = dict(
        username="alice",
        email="a@x.com",
        password_hash="hashed",
        created_at=now,
        updated_at=now,
    )
    fields.update(overrides)
    return UserModel(**fields)


class TestUserModel:
    """Tests for UserModel."""

    def test_user_creation(self):
        user = build_user()

        assert user.username == "alice"
        assert user.email == "a@x.com"
        assert user.password_hash == "hashed"

    @pytest.mark.asyncio
    async def test_defaults_applied_on_insert(self, db_session):
        """Test column defaults: new users are unverified and accepting."""
        user = build_user()
        db_session.add(user)
        await db_session.commit()

        assert user.id
        assert user.is_verified is False
        assert user.is_accepting_messages is True
        assert user.is_active is True

    @pytest.mark.asyncio
    async def test_username_unique(self, db_session):
        db_session.add(build_user())
        await db_session.commit()

        db_session.add(build_user(email="b@x.com"))
        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()

    @pytest.mark.asyncio
    async def test_email_unique(self, db_session):
        db_session.add(build_user())
        await db_session.commit()

        db_session.add(build_user(username="bob"))
        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()


class TestMessageModel:
    """Tests for MessageModel."""

    @pytest.mark.asyncio
    async def test_seq_increases_with_insertion(self, db_session):
        user = build_user()
        db_session.add(user)
        await db_session.commit()

        now = datetime.now(timezone.utc)
        first = MessageModel(user_id=user.id, content="First message", created_at=now)
        db_session.add(first)
        await db_session.commit()
        second = MessageModel(user_id=user.id, content="Second message", created_at=now)
        db_session.add(second)
        await db_session.commit()

        assert second.seq > first.seq
        assert first.id != second.id

        result = await db_session.execute(
            select(MessageModel.id).order_by(MessageModel.seq.desc())
        )
        assert list(result.scalars()) == [second.id, first.id]
