"""
API route dependencies.
"""

from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CallerIdentity, decode_token, is_token_expired
from app.db.database import get_db_session
from app.services.auth_service import AuthService
from app.services.mail_service import VerificationMailer, get_mailer


# HTTP Bearer scheme for JWT. Missing credentials are not rejected here:
# services answer UNAUTHENTICATED for a None caller.
optional_security = HTTPBearer(auto_error=False)


async def get_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    session: AsyncSession = Depends(get_db_session),
) -> Optional[CallerIdentity]:
    """
    Resolve the authenticated caller from a bearer access token.

    Returns None when there is no valid session.
    """
    if not credentials:
        return None

    token_data = decode_token(credentials.credentials)
    if not token_data or is_token_expired(token_data):
        return None

    if token_data.token_type != "access":
        return None

    auth_service = AuthService(session)
    user = await auth_service.get_user_by_id(token_data.user_id)

    if not user or not user.is_active:
        return None

    return CallerIdentity(user_id=user.id, username=user.username)


# Dependency annotations
SessionDep = Annotated[AsyncSession, Depends(get_db_session)]
CallerDep = Annotated[Optional[CallerIdentity], Depends(get_caller)]
MailerDep = Annotated[VerificationMailer, Depends(get_mailer)]
