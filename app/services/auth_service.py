"""
Authentication service: registration, verification and sign-in.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.auth import (
    TokenPair,
    create_token_pair,
    decode_token,
    hash_password,
    is_token_expired,
    verify_password,
)
from app.core.exceptions import DuplicateKeyError
from app.core.result import Err, ErrorKind, Ok, Result
from app.core.verification import (
    code_expiry,
    codes_match,
    generate_verification_code,
    is_code_expired,
    utc_now,
)
from app.db.models import UserModel
from app.services.identity_store import IdentityStore, store_errors_as_results

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{2,20}$")


@dataclass
class IssuedCode:
    """A user together with the verification code just issued to them."""

    user: UserModel
    code: str


def validate_username(username: str) -> Optional[str]:
    """Return an error detail if the username is malformed, else None."""
    if not USERNAME_PATTERN.match(username or ""):
        return "Username must be 2-20 characters of letters, digits or underscores"
    return None


class AuthService:
    """Service for authentication and user management."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session = session
        self.clock = clock
        self.store = IdentityStore(session, clock=clock)

    @store_errors_as_results
    async def register(
        self,
        username: str,
        email: str,
        password: str,
    ) -> Result[IssuedCode]:
        """
        Register a new (unverified) user and issue a verification code.

        A username held by an unverified account whose code has expired is
        reclaimed. An email held by an unverified account is re-registered
        in place with the new details.

        Args:
            username: Public username
            email: User's email address
            password: Plain text password

        Returns:
            Ok(IssuedCode) or Err(DUPLICATE_KEY | INVALID_INPUT)
        """
        detail = validate_username(username)
        if detail:
            return Err(ErrorKind.INVALID_INPUT, detail)
        try:
            email = validate_email(email, check_deliverability=False).normalized.lower()
        except EmailNotValidError as e:
            return Err(ErrorKind.INVALID_INPUT, str(e))
        if len(password or "") < settings.password_min_length:
            return Err(
                ErrorKind.INVALID_INPUT,
                f"Password must be at least {settings.password_min_length} characters",
            )

        now = self.clock()

        existing = await self.store.find_by_email(email)
        if existing and existing.is_verified:
            return Err(ErrorKind.DUPLICATE_KEY, "Email is already registered")

        holder = await self.store.find_by_username(username)
        if holder and holder.email != email:
            if holder.is_verified:
                return Err(ErrorKind.DUPLICATE_KEY, "Username is already taken")
            if not is_code_expired(holder.verify_code_expiry, now):
                return Err(ErrorKind.DUPLICATE_KEY, "Username is already taken")
            logger.info(f"Reclaiming stale unverified registration {holder.id}")
            await self.store.delete_user(holder.id)

        code = generate_verification_code()
        expiry = code_expiry(now)
        password_hash = hash_password(password)

        try:
            if existing:
                user = await self.store.reissue_registration(
                    existing.id, username, password_hash, code, expiry
                )
                if user is None:
                    # Verified (or removed) after it was read
                    return Err(ErrorKind.DUPLICATE_KEY, "Email is already registered")
                logger.info(f"Re-issued registration for user {existing.id}")
            else:
                user = await self.store.create_user(
                    username, email, password_hash, code, expiry
                )
                logger.info(f"Registered user {user.id}")
        except DuplicateKeyError as e:
            return Err(ErrorKind.DUPLICATE_KEY, e.user_message)

        return Ok(IssuedCode(user=user, code=code))

    @store_errors_as_results
    async def verify_code(self, username: str, code: str) -> Result[UserModel]:
        """
        Check a submitted verification code.

        Verifying an already-verified account succeeds without changes.
        Failures never touch stored state.

        Returns:
            Ok(user) or Err(NOT_FOUND | EXPIRED | MISMATCH)
        """
        user = await self.store.find_by_username(username)
        if not user:
            return Err(ErrorKind.NOT_FOUND, "Account not found")

        if user.is_verified:
            return Ok(user)

        if is_code_expired(user.verify_code_expiry, self.clock()):
            return Err(
                ErrorKind.EXPIRED,
                "Verification code has expired. Please request a new code",
            )

        if not codes_match(code or "", user.verify_code):
            return Err(ErrorKind.MISMATCH, "Incorrect verification code")

        await self.store.mark_verified(user.id)
        logger.info(f"Verified user {user.id}")
        return Ok(await self.store.get_by_id(user.id))

    @store_errors_as_results
    async def resend_code(self, username: str) -> Result[Optional[IssuedCode]]:
        """
        Issue a fresh code and expiry for an unverified account.

        Returns:
            Ok(IssuedCode), Ok(None) when already verified, or Err(NOT_FOUND)
        """
        user = await self.store.find_by_username(username)
        if not user:
            return Err(ErrorKind.NOT_FOUND, "Account not found")
        if user.is_verified:
            return Ok(None)

        code = generate_verification_code()
        await self.store.reissue_code(user.id, code, code_expiry(self.clock()))
        return Ok(IssuedCode(user=user, code=code))

    @store_errors_as_results
    async def check_username(self, username: str) -> Result[bool]:
        """
        Check whether a username can be registered.

        Usernames held by unverified accounts whose code has expired count
        as available, since registration reclaims them.
        """
        detail = validate_username(username)
        if detail:
            return Err(ErrorKind.INVALID_INPUT, detail)

        holder = await self.store.find_by_username(username)
        if holder is None:
            return Ok(True)
        if holder.is_verified:
            return Ok(False)
        return Ok(is_code_expired(holder.verify_code_expiry, self.clock()))

    @store_errors_as_results
    async def sign_in(self, identifier: str, password: str) -> Result[TokenPair]:
        """
        Authenticate by email or username and return tokens.

        Returns:
            Ok(TokenPair) or Err(INVALID_CREDENTIALS | NOT_VERIFIED)
        """
        user = await self.store.find_by_email_or_username(identifier or "")

        if not user or not verify_password(password, user.password_hash):
            return Err(ErrorKind.INVALID_CREDENTIALS, "Invalid credentials")

        if not user.is_active:
            return Err(ErrorKind.INVALID_CREDENTIALS, "Invalid credentials")

        if not user.is_verified:
            return Err(
                ErrorKind.NOT_VERIFIED,
                "Please verify your account before signing in",
            )

        return Ok(create_token_pair(user.id, user.username))

    @store_errors_as_results
    async def refresh(self, refresh_token: str) -> Result[TokenPair]:
        """Exchange a refresh token for a new token pair."""
        token_data = decode_token(refresh_token)

        if not token_data or is_token_expired(token_data):
            return Err(ErrorKind.UNAUTHENTICATED, "Invalid refresh token")

        if token_data.token_type != "refresh":
            return Err(ErrorKind.UNAUTHENTICATED, "Invalid token type")

        # Verify user still exists and is active
        user = await self.store.get_by_id(token_data.user_id)
        if not user or not user.is_active:
            return Err(ErrorKind.UNAUTHENTICATED, "User not found or inactive")

        return Ok(create_token_pair(user.id, user.username))

    async def get_user_by_id(self, user_id: str) -> Optional[UserModel]:
        """Get user by ID."""
        return await self.store.get_by_id(user_id)
