"""
Verification code utilities.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from app.config import settings


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """
    Normalize a stored timestamp to aware UTC.

    SQLite drops tzinfo on round-trip, so naive values are taken as UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def generate_verification_code(length: Optional[int] = None) -> str:
    """
    Generate a fixed-width numeric verification code.

    Args:
        length: Number of digits (defaults to settings.verification_code_length)

    Returns:
        Zero-padded string of decimal digits
    """
    digits = length or settings.verification_code_length
    return "".join(secrets.choice("0123456789") for _ in range(digits))


def code_expiry(now: Optional[datetime] = None) -> datetime:
    """Expiry timestamp for a code issued at ``now``."""
    issued_at = now or utc_now()
    return issued_at + timedelta(minutes=settings.verification_code_ttl_minutes)


def is_code_expired(expiry: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """
    Check whether a verification code has expired.

    A missing expiry counts as expired. The code is still valid at the exact
    expiry instant.
    """
    if expiry is None:
        return True
    return (now or utc_now()) > as_utc(expiry)


def codes_match(submitted: str, stored: Optional[str]) -> bool:
    """Constant-time comparison of a submitted code against the stored one."""
    if stored is None:
        return False
    return secrets.compare_digest(submitted.strip().encode(), stored.encode())
