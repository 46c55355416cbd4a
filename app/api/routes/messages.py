"""
Message endpoints: anonymous sending and inbox curation.
"""

from fastapi import APIRouter, status

from app.api.deps import CallerDep, SessionDep
from app.api.errors import unwrap
from app.models.schemas import (
    DeleteMessageResponse,
    InboxStatsResponse,
    Message,
    MessageListResponse,
    SendMessageRequest,
)
from app.services.inbox_service import InboxService


router = APIRouter()


@router.post(
    "",
    response_model=Message,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(request: SendMessageRequest, session: SessionDep):
    """
    Send an anonymous message to a user.

    No authentication is needed and nothing about the sender is stored.
    """
    inbox = InboxService(session)
    message = unwrap(await inbox.send_message(request.username, request.content))
    return Message.from_model(message)


@router.get("", response_model=MessageListResponse)
async def list_messages(caller: CallerDep, session: SessionDep):
    """List the caller's messages, most recent first."""
    inbox = InboxService(session)
    messages = unwrap(await inbox.list_messages(caller))
    return MessageListResponse(
        messages=[Message.from_model(m) for m in messages],
        total=len(messages),
    )


@router.get("/stats", response_model=InboxStatsResponse)
async def inbox_stats(caller: CallerDep, session: SessionDep):
    """Message counts and acceptance state for the caller."""
    inbox = InboxService(session)
    stats = unwrap(await inbox.inbox_stats(caller))
    return InboxStatsResponse(
        totalMessages=stats.total_messages,
        messagesLast7Days=stats.messages_last_7_days,
        isAcceptingMessages=stats.is_accepting_messages,
    )


@router.delete("/{message_id}", response_model=DeleteMessageResponse)
async def delete_message(message_id: str, caller: CallerDep, session: SessionDep):
    """Delete one of the caller's messages."""
    inbox = InboxService(session)
    deleted_id = unwrap(await inbox.delete_message(caller, message_id))
    return DeleteMessageResponse(id=deleted_id)
