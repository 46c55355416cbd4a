"""
Identity store: persisted users and their anonymous inboxes.

Every mutation is a single statement committed in its own transaction.
Inbox writes never rewrite the whole inbox: appending is one INSERT and
removal is one DELETE scoped to the owner, so concurrent requests against
the same user cannot clobber each other.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from functools import wraps
from typing import Callable, Optional
from uuid import uuid4

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    DuplicateKeyError,
    MissingReferenceError,
    StoreUnavailableError,
)
from app.core.result import Err, ErrorKind
from app.core.verification import utc_now
from app.db.models import MessageModel, UserModel

logger = logging.getLogger(__name__)

FOREIGN_KEY_VIOLATION = "23503"


def is_foreign_key_violation(error: IntegrityError) -> bool:
    """True when the integrity error is a dangling reference, not a uniqueness clash."""
    code = getattr(error.orig, "sqlstate", None) or getattr(error.orig, "pgcode", None)
    return code == FOREIGN_KEY_VIOLATION or "FOREIGN KEY" in str(error.orig).upper()


def store_errors_as_results(method):
    """Turn a StoreUnavailableError raised by a service method into an Err."""

    @wraps(method)
    async def wrapper(*args, **kwargs):
        try:
            return await method(*args, **kwargs)
        except StoreUnavailableError as e:
            return Err(ErrorKind.STORE_UNAVAILABLE, e.user_message)

    return wrapper


class IdentityStore:
    """Data access for users and messages."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session = session
        self.clock = clock

    @asynccontextmanager
    async def _guard(self, operation: str):
        try:
            yield
        except IntegrityError as e:
            await self.session.rollback()
            if is_foreign_key_violation(e):
                raise MissingReferenceError(f"{operation}: {e.orig}") from e
            raise DuplicateKeyError(f"{operation}: {e.orig}") from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Store operation {operation} failed: {e}")
            raise StoreUnavailableError(f"{operation}: {e}") from e

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def create_user(
        self,
        username: str,
        email: str,
        password_hash: str,
        code: str,
        expiry: datetime,
    ) -> UserModel:
        """
        Insert a new unverified user.

        Raises:
            DuplicateKeyError: If the username or email is already taken
        """
        now = self.clock()
        user = UserModel(
            id=str(uuid4()),
            username=username,
            email=email,
            password_hash=password_hash,
            verify_code=code,
            verify_code_expiry=expiry,
            is_verified=False,
            is_accepting_messages=True,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        async with self._guard("create_user"):
            self.session.add(user)
            await self.session.commit()
        return user

    async def get_by_id(self, user_id: str) -> Optional[UserModel]:
        """Get user by ID."""
        async with self._guard("get_by_id"):
            return await self.session.get(UserModel, user_id, populate_existing=True)

    async def find_by_username(self, username: str) -> Optional[UserModel]:
        """Get user by username."""
        async with self._guard("find_by_username"):
            result = await self.session.execute(
                select(UserModel).where(UserModel.username == username)
            )
            return result.scalar_one_or_none()

    async def find_by_email(self, email: str) -> Optional[UserModel]:
        """Get user by email (case-insensitive)."""
        async with self._guard("find_by_email"):
            result = await self.session.execute(
                select(UserModel).where(UserModel.email == email.lower())
            )
            return result.scalar_one_or_none()

    async def find_by_email_or_username(self, key: str) -> Optional[UserModel]:
        """Resolve a sign-in identifier that may be either an email or a username."""
        async with self._guard("find_by_email_or_username"):
            result = await self.session.execute(
                select(UserModel).where(
                    or_(UserModel.email == key.lower(), UserModel.username == key)
                )
            )
            return result.scalars().first()

    async def mark_verified(self, user_id: str) -> bool:
        """Flag the user as verified and clear the spent code."""
        async with self._guard("mark_verified"):
            result = await self.session.execute(
                update(UserModel)
                .where(UserModel.id == user_id)
                .values(
                    is_verified=True,
                    verify_code=None,
                    verify_code_expiry=None,
                    updated_at=self.clock(),
                )
            )
            await self.session.commit()
        return result.rowcount > 0

    async def reissue_code(self, user_id: str, code: str, expiry: datetime) -> bool:
        """Replace the verification code and expiry of an unverified user."""
        async with self._guard("reissue_code"):
            result = await self.session.execute(
                update(UserModel)
                .where(and_(UserModel.id == user_id, UserModel.is_verified.is_(False)))
                .values(
                    verify_code=code,
                    verify_code_expiry=expiry,
                    updated_at=self.clock(),
                )
            )
            await self.session.commit()
        return result.rowcount > 0

    async def reissue_registration(
        self,
        user_id: str,
        username: str,
        password_hash: str,
        code: str,
        expiry: datetime,
    ) -> Optional[UserModel]:
        """
        Overwrite a never-verified registration with fresh signup details.

        Returns:
            The updated user, or None if the record was verified or removed
            since it was read

        Raises:
            DuplicateKeyError: If the new username is taken by another user
        """
        async with self._guard("reissue_registration"):
            result = await self.session.execute(
                update(UserModel)
                .where(and_(UserModel.id == user_id, UserModel.is_verified.is_(False)))
                .values(
                    username=username,
                    password_hash=password_hash,
                    verify_code=code,
                    verify_code_expiry=expiry,
                    updated_at=self.clock(),
                )
            )
            await self.session.commit()
        if result.rowcount == 0:
            return None
        return await self.get_by_id(user_id)

    async def set_accepting(self, user_id: str, value: bool) -> bool:
        """Persist the acceptance flag. Inbox rows are not touched."""
        async with self._guard("set_accepting"):
            result = await self.session.execute(
                update(UserModel)
                .where(UserModel.id == user_id)
                .values(is_accepting_messages=value, updated_at=self.clock())
            )
            await self.session.commit()
        return result.rowcount > 0

    async def delete_user(self, user_id: str) -> None:
        """Remove a user together with its messages."""
        async with self._guard("delete_user"):
            await self.session.execute(
                delete(MessageModel).where(MessageModel.user_id == user_id)
            )
            await self.session.execute(delete(UserModel).where(UserModel.id == user_id))
            await self.session.commit()

    def _stale_unverified_filter(self, older_than: datetime):
        return and_(
            UserModel.is_verified.is_(False),
            or_(
                UserModel.verify_code_expiry < older_than,
                and_(
                    UserModel.verify_code_expiry.is_(None),
                    UserModel.created_at < older_than,
                ),
            ),
        )

    async def count_stale_unverified(self, older_than: datetime) -> int:
        """Count unverified users whose verification window ended before older_than."""
        async with self._guard("count_stale_unverified"):
            result = await self.session.execute(
                select(func.count())
                .select_from(UserModel)
                .where(self._stale_unverified_filter(older_than))
            )
            return result.scalar_one()

    async def purge_stale_unverified(self, older_than: datetime) -> int:
        """
        Delete unverified users whose verification window ended before older_than.

        Returns:
            Number of users deleted
        """
        async with self._guard("purge_stale_unverified"):
            stale_ids = select(UserModel.id).where(
                self._stale_unverified_filter(older_than)
            )
            await self.session.execute(
                delete(MessageModel)
                .where(MessageModel.user_id.in_(stale_ids))
                .execution_options(synchronize_session=False)
            )
            result = await self.session.execute(
                delete(UserModel)
                .where(self._stale_unverified_filter(older_than))
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        return result.rowcount

    async def count_users(self, verified: Optional[bool] = None) -> int:
        """Count users, optionally filtered by verification state."""
        query = select(func.count()).select_from(UserModel)
        if verified is not None:
            query = query.where(UserModel.is_verified.is_(verified))
        async with self._guard("count_users"):
            result = await self.session.execute(query)
            return result.scalar_one()

    # ------------------------------------------------------------------
    # Inbox
    # ------------------------------------------------------------------

    async def append_message(self, user_id: str, content: str) -> Optional[MessageModel]:
        """
        Add one message to the user's inbox with a single INSERT.

        Returns:
            The stored message, or None if the user no longer exists
        """
        message = MessageModel(
            id=str(uuid4()),
            user_id=user_id,
            content=content,
            created_at=self.clock(),
        )
        try:
            async with self._guard("append_message"):
                self.session.add(message)
                await self.session.commit()
        except MissingReferenceError:
            logger.info(f"Inbox owner {user_id} removed before delivery")
            return None
        return message

    async def remove_message(self, user_id: str, message_id: str) -> bool:
        """
        Delete a message only if it belongs to user_id.

        Returns:
            True if a row was removed; False when the id is unknown or owned
            by someone else
        """
        async with self._guard("remove_message"):
            result = await self.session.execute(
                delete(MessageModel).where(
                    and_(MessageModel.id == message_id, MessageModel.user_id == user_id)
                )
            )
            await self.session.commit()
        return result.rowcount > 0

    async def list_messages(self, user_id: str) -> list[MessageModel]:
        """User's messages, most recent first."""
        async with self._guard("list_messages"):
            result = await self.session.execute(
                select(MessageModel)
                .where(MessageModel.user_id == user_id)
                .order_by(MessageModel.seq.desc())
            )
            return list(result.scalars().all())

    async def count_messages(
        self,
        user_id: str,
        since: Optional[datetime] = None,
    ) -> int:
        """Number of messages in the inbox, optionally only those created after since."""
        query = (
            select(func.count())
            .select_from(MessageModel)
            .where(MessageModel.user_id == user_id)
        )
        if since is not None:
            query = query.where(MessageModel.created_at >= since)
        async with self._guard("count_messages"):
            result = await self.session.execute(query)
            return result.scalar_one()
