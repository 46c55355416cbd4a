"""
Authentication endpoints: sign-up, verification and sign-in.
"""

from fastapi import APIRouter, BackgroundTasks, Query, status
from pydantic import BaseModel

from app.api.deps import CallerDep, MailerDep, SessionDep
from app.api.errors import error_to_http, unwrap
from app.config import settings
from app.core.result import Err, ErrorKind
from app.services.auth_service import AuthService


router = APIRouter()


# Request/Response Models
class SignUpRequest(BaseModel):
    """Registration request. Field rules are enforced by the service."""

    username: str
    email: str
    password: str


class VerifyCodeRequest(BaseModel):
    """Verification code submission."""

    username: str
    code: str


class ResendCodeRequest(BaseModel):
    """Request for a fresh verification code."""

    username: str


class SignInRequest(BaseModel):
    """Sign-in request. The identifier may be an email or a username."""

    identifier: str
    password: str


class RefreshRequest(BaseModel):
    """Token refresh request."""

    refreshToken: str


class TokenResponse(BaseModel):
    """Authentication token response."""

    accessToken: str
    refreshToken: str
    tokenType: str = "bearer"


class UserStubResponse(BaseModel):
    """Newly registered (unverified) user."""

    id: str
    username: str
    email: str
    isVerified: bool


class StatusResponse(BaseModel):
    """Generic acknowledgement."""

    success: bool = True
    message: str


class UsernameAvailabilityResponse(BaseModel):
    """Result of a username availability check."""

    username: str
    available: bool


class ProfileResponse(BaseModel):
    """Current user's profile."""

    id: str
    username: str
    email: str
    isVerified: bool
    isAcceptingMessages: bool
    profileUrl: str


def profile_url(username: str) -> str:
    """Public link strangers use to send messages to username."""
    return f"{settings.public_base_url.rstrip('/')}/u/{username}"


@router.post(
    "/sign-up",
    response_model=UserStubResponse,
    status_code=status.HTTP_201_CREATED,
)
async def sign_up(
    request: SignUpRequest,
    session: SessionDep,
    mailer: MailerDep,
    background_tasks: BackgroundTasks,
):
    """
    Register a new account.

    A verification code is mailed after the response is sent; the account
    must be verified before signing in.
    """
    auth = AuthService(session)
    issued = unwrap(
        await auth.register(
            username=request.username,
            email=request.email,
            password=request.password,
        )
    )
    background_tasks.add_task(
        mailer.send_verification_code,
        issued.user.email,
        issued.user.username,
        issued.code,
    )
    return UserStubResponse(
        id=issued.user.id,
        username=issued.user.username,
        email=issued.user.email,
        isVerified=issued.user.is_verified,
    )


@router.post("/verify-code", response_model=StatusResponse)
async def verify_code(request: VerifyCodeRequest, session: SessionDep):
    """Activate an account with the code it was sent."""
    auth = AuthService(session)
    unwrap(await auth.verify_code(request.username, request.code))
    return StatusResponse(message="Account verified successfully")


@router.post(
    "/resend-code",
    response_model=StatusResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def resend_code(
    request: ResendCodeRequest,
    session: SessionDep,
    mailer: MailerDep,
    background_tasks: BackgroundTasks,
):
    """Issue a new verification code for an unverified account."""
    auth = AuthService(session)
    issued = unwrap(await auth.resend_code(request.username))
    if issued is None:
        return StatusResponse(message="Account is already verified")

    background_tasks.add_task(
        mailer.send_verification_code,
        issued.user.email,
        issued.user.username,
        issued.code,
    )
    return StatusResponse(message="A new verification code has been sent")


@router.get("/check-username", response_model=UsernameAvailabilityResponse)
async def check_username(session: SessionDep, username: str = Query(...)):
    """Check whether a username is free to register."""
    auth = AuthService(session)
    available = unwrap(await auth.check_username(username))
    return UsernameAvailabilityResponse(username=username, available=available)


@router.post("/sign-in", response_model=TokenResponse)
async def sign_in(request: SignInRequest, session: SessionDep):
    """
    Sign in with email or username and password.

    Returns JWT access and refresh tokens.
    """
    auth = AuthService(session)
    tokens = unwrap(await auth.sign_in(request.identifier, request.password))
    return TokenResponse(
        accessToken=tokens.access_token,
        refreshToken=tokens.refresh_token,
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(request: RefreshRequest, session: SessionDep):
    """
    Refresh access token using refresh token.

    Returns new access and refresh tokens.
    """
    auth = AuthService(session)
    tokens = unwrap(await auth.refresh(request.refreshToken))
    return TokenResponse(
        accessToken=tokens.access_token,
        refreshToken=tokens.refresh_token,
    )


@router.get("/me", response_model=ProfileResponse)
async def get_current_user_profile(caller: CallerDep, session: SessionDep):
    """
    Get current authenticated user's profile.

    Requires valid access token.
    """
    auth = AuthService(session)
    user = await auth.get_user_by_id(caller.user_id) if caller else None
    if not user:
        raise error_to_http(Err(ErrorKind.UNAUTHENTICATED, "Not authenticated"))

    return ProfileResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        isVerified=user.is_verified,
        isAcceptingMessages=user.is_accepting_messages,
        profileUrl=profile_url(user.username),
    )
