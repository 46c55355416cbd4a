"""
Pydantic schemas for API request/response validation.
"""

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from app.core.verification import as_utc
from app.db.models import MessageModel


# ============ Message Schemas ============

class SendMessageRequest(BaseModel):
    """Anonymous message submitted to a user's profile link."""

    username: str = Field(..., description="Recipient's public username")
    content: str = Field(..., description="Message text")


class Message(BaseModel):
    """A message in the owner's inbox."""

    id: str = Field(..., description="Unique message ID")
    content: str = Field(..., description="Message text")
    createdAt: datetime = Field(..., description="Server-assigned creation time")

    @classmethod
    def from_model(cls, message: MessageModel) -> "Message":
        return cls(
            id=message.id,
            content=message.content,
            createdAt=as_utc(message.created_at),
        )


class MessageListResponse(BaseModel):
    """Inbox contents, most recent first."""

    messages: List[Message]
    total: int = Field(..., ge=0)


class DeleteMessageResponse(BaseModel):
    """Response after deleting a message."""

    id: str
    deleted: bool = True


class InboxStatsResponse(BaseModel):
    """Dashboard counters."""

    totalMessages: int = Field(..., ge=0)
    messagesLast7Days: int = Field(..., ge=0)
    isAcceptingMessages: bool


# ============ Acceptance Schemas ============

class AcceptMessagesRequest(BaseModel):
    """Toggle request for message acceptance."""

    acceptMessages: bool


class AcceptMessagesResponse(BaseModel):
    """Current message acceptance state."""

    isAcceptingMessages: bool
