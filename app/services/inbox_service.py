"""
Inbox service: acceptance toggle, anonymous ingestion and inbox curation.

Owner operations take the caller's identity explicitly and only ever touch
the caller's own records. Ingestion takes no caller at all: nothing about
the sender is recorded.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.auth import CallerIdentity
from app.core.result import Err, ErrorKind, Ok, Result
from app.core.verification import utc_now
from app.db.models import MessageModel
from app.services.identity_store import IdentityStore, store_errors_as_results

logger = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(days=7)

_UNAUTHENTICATED = Err(ErrorKind.UNAUTHENTICATED, "Not authenticated")


@dataclass
class InboxStats:
    """Dashboard counters for one inbox."""

    total_messages: int
    messages_last_7_days: int
    is_accepting_messages: bool


class InboxService:
    """Service for a user's anonymous inbox."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session = session
        self.clock = clock
        self.store = IdentityStore(session, clock=clock)

    @store_errors_as_results
    async def get_acceptance(self, caller: Optional[CallerIdentity]) -> Result[bool]:
        """Current acceptance flag of the caller's own account."""
        if caller is None:
            return _UNAUTHENTICATED

        user = await self.store.get_by_id(caller.user_id)
        if not user:
            return _UNAUTHENTICATED
        return Ok(user.is_accepting_messages)

    @store_errors_as_results
    async def set_acceptance(
        self,
        caller: Optional[CallerIdentity],
        value: bool,
    ) -> Result[bool]:
        """
        Turn message acceptance on or off for the caller.

        Messages already in the inbox are unaffected.

        Returns:
            Ok(new value) or Err(UNAUTHENTICATED)
        """
        if caller is None:
            return _UNAUTHENTICATED

        if not await self.store.set_accepting(caller.user_id, value):
            return _UNAUTHENTICATED

        logger.info(f"User {caller.user_id} set accepting messages to {value}")
        return Ok(value)

    @store_errors_as_results
    async def send_message(self, username: str, content: str) -> Result[MessageModel]:
        """
        Append an anonymous message to a user's inbox.

        Content is stripped of surrounding whitespace before the length check.

        Args:
            username: Target user's public username
            content: Message text

        Returns:
            Ok(created message) or Err(INVALID_CONTENT | NOT_FOUND | NOT_ACCEPTING)
        """
        text = (content or "").strip()
        if not settings.message_min_length <= len(text) <= settings.message_max_length:
            return Err(
                ErrorKind.INVALID_CONTENT,
                f"Message must be between {settings.message_min_length} and "
                f"{settings.message_max_length} characters",
            )

        target = await self.store.find_by_username(username)
        if not target:
            return Err(ErrorKind.NOT_FOUND, "User not found")

        if not target.is_accepting_messages:
            return Err(ErrorKind.NOT_ACCEPTING, "User is not accepting messages")

        message = await self.store.append_message(target.id, text)
        if message is None:
            return Err(ErrorKind.NOT_FOUND, "User not found")
        logger.info(f"Message {message.id} delivered")
        return Ok(message)

    @store_errors_as_results
    async def list_messages(
        self,
        caller: Optional[CallerIdentity],
    ) -> Result[list[MessageModel]]:
        """Caller's messages, most recent first."""
        if caller is None:
            return _UNAUTHENTICATED
        return Ok(await self.store.list_messages(caller.user_id))

    @store_errors_as_results
    async def delete_message(
        self,
        caller: Optional[CallerIdentity],
        message_id: str,
    ) -> Result[str]:
        """
        Delete one message from the caller's inbox.

        A message that does not exist and a message owned by someone else
        produce the same NOT_FOUND.
        """
        if caller is None:
            return _UNAUTHENTICATED

        if not await self.store.remove_message(caller.user_id, message_id):
            return Err(ErrorKind.NOT_FOUND, "Message not found")

        logger.info(f"User {caller.user_id} deleted message {message_id}")
        return Ok(message_id)

    @store_errors_as_results
    async def inbox_stats(self, caller: Optional[CallerIdentity]) -> Result[InboxStats]:
        """Message counts and acceptance state for the caller's dashboard."""
        if caller is None:
            return _UNAUTHENTICATED

        user = await self.store.get_by_id(caller.user_id)
        if not user:
            return _UNAUTHENTICATED

        total = await self.store.count_messages(user.id)
        recent = await self.store.count_messages(
            user.id, since=self.clock() - RECENT_WINDOW
        )
        return Ok(
            InboxStats(
                total_messages=total,
                messages_last_7_days=recent,
                is_accepting_messages=user.is_accepting_messages,
            )
        )
