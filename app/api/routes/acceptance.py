"""
Message acceptance toggle endpoints.
"""

from fastapi import APIRouter

from app.api.deps import CallerDep, SessionDep
from app.api.errors import unwrap
from app.models.schemas import AcceptMessagesRequest, AcceptMessagesResponse
from app.services.inbox_service import InboxService


router = APIRouter()


@router.get("", response_model=AcceptMessagesResponse)
async def get_acceptance(caller: CallerDep, session: SessionDep):
    """Whether the caller currently accepts anonymous messages."""
    inbox = InboxService(session)
    value = unwrap(await inbox.get_acceptance(caller))
    return AcceptMessagesResponse(isAcceptingMessages=value)


@router.post("", response_model=AcceptMessagesResponse)
async def set_acceptance(
    request: AcceptMessagesRequest,
    caller: CallerDep,
    session: SessionDep,
):
    """Turn anonymous message acceptance on or off for the caller."""
    inbox = InboxService(session)
    value = unwrap(await inbox.set_acceptance(caller, request.acceptMessages))
    return AcceptMessagesResponse(isAcceptingMessages=value)
