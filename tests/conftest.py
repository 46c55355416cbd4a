"""
Shared test fixtures and configuration for pytest.
"""

import os
import pytest
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator
from unittest.mock import MagicMock

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["LOG_JSON"] = "false"
os.environ["SMTP_HOST"] = ""

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.database import Base, get_db_session
from app.db.models import UserModel
from app.core.auth import hash_password, create_token_pair
from app.services.mail_service import VerificationMailer, get_mailer


# Test database URL (in-memory SQLite for unit tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_PASSWORD = "pw123456"


class FrozenClock:
    """Controllable clock passed to services instead of the wall clock."""

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
async def async_engine():
    """Create async test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def clock():
    """Frozen clock starting at 2024-01-01 12:00 UTC."""
    return FrozenClock()


@pytest.fixture
def mock_mailer():
    """Mailer double recording verification codes instead of sending them."""
    mailer = MagicMock(spec=VerificationMailer)
    mailer.send_verification_code.return_value = True
    return mailer


@pytest.fixture
async def test_client(db_session, mock_mailer) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client with database and mailer overrides."""

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_db_session] = override_get_session
    app.dependency_overrides[get_mailer] = lambda: mock_mailer

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


# ============ User Fixtures ============

async def create_user(
    session: AsyncSession,
    username: str,
    email: str,
    is_verified: bool = True,
    is_accepting_messages: bool = True,
) -> UserModel:
    """Insert a user directly, bypassing the registration flow."""
    now = datetime.now(timezone.utc)
    user = UserModel(
        username=username,
        email=email,
        password_hash=hash_password(TEST_PASSWORD),
        verify_code=None if is_verified else "123456",
        verify_code_expiry=None if is_verified else now + timedelta(hours=1),
        is_verified=is_verified,
        is_accepting_messages=is_accepting_messages,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
def make_user(db_session):
    """Factory fixture inserting users into the test database."""

    async def _make(username: str, email: str, **kwargs) -> UserModel:
        return await create_user(db_session, username, email, **kwargs)

    return _make


@pytest.fixture
async def test_user(db_session) -> UserModel:
    """Verified user accepting messages."""
    return await create_user(db_session, "testuser", "test@example.com")


@pytest.fixture
async def other_user(db_session) -> UserModel:
    """A second verified user, for ownership isolation tests."""
    return await create_user(db_session, "otheruser", "other@example.com")


@pytest.fixture
def test_user_tokens(test_user) -> dict:
    """Generate tokens for test user."""
    tokens = create_token_pair(test_user.id, test_user.username)
    return {
        "access_token": tokens.access_token,
        "refresh_token": tokens.refresh_token,
    }


@pytest.fixture
def auth_headers(test_user_tokens) -> dict:
    """Authorization headers with test user token."""
    return {"Authorization": f"Bearer {test_user_tokens['access_token']}"}


@pytest.fixture
def other_auth_headers(other_user) -> dict:
    """Authorization headers with the second user's token."""
    tokens = create_token_pair(other_user.id, other_user.username)
    return {"Authorization": f"Bearer {tokens.access_token}"}
