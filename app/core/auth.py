"""
JWT authentication utilities.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from app.config import settings


# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class TokenData(BaseModel):
    """Data extracted from a JWT token."""

    user_id: str
    username: str
    exp: datetime
    token_type: str  # 'access' or 'refresh'


class TokenPair(BaseModel):
    """Access and refresh token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


@dataclass(frozen=True)
class CallerIdentity:
    """
    Authenticated caller, resolved once per request by the access gate.

    Acceptance and curation operations take this explicitly and only ever
    act on ``user_id``'s own records.
    """

    user_id: str
    username: str


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def hash_password(password: str) -> str:
    """Hash a password for storage."""
    return pwd_context.hash(password)


def _create_token(user_id: str, username: str, token_type: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "username": username,
        "exp": now + lifetime,
        "type": token_type,
        "iat": now,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: str, username: str) -> str:
    """
    Create a JWT access token.

    Args:
        user_id: User's unique ID
        username: User's public username

    Returns:
        Encoded JWT token
    """
    return _create_token(
        user_id,
        username,
        "access",
        timedelta(minutes=settings.jwt_access_expire_minutes),
    )


def create_refresh_token(user_id: str, username: str) -> str:
    """
    Create a JWT refresh token.

    Args:
        user_id: User's unique ID
        username: User's public username

    Returns:
        Encoded JWT token
    """
    return _create_token(
        user_id,
        username,
        "refresh",
        timedelta(days=settings.jwt_refresh_expire_days),
    )


def create_token_pair(user_id: str, username: str) -> TokenPair:
    """Create both access and refresh tokens."""
    return TokenPair(
        access_token=create_access_token(user_id, username),
        refresh_token=create_refresh_token(user_id, username),
    )


def decode_token(token: str) -> Optional[TokenData]:
    """
    Decode and validate a JWT token.

    Args:
        token: Encoded JWT token

    Returns:
        TokenData if valid, None otherwise
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        return TokenData(
            user_id=payload["sub"],
            username=payload["username"],
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            token_type=payload.get("type", "access"),
        )
    except (JWTError, KeyError):
        return None


def is_token_expired(token_data: TokenData) -> bool:
    """Check if a token is expired."""
    return token_data.exp < datetime.now(timezone.utc)
