"""
Tagged results returned by the service layer.

Every service operation returns either ``Ok(value)`` or ``Err(kind, detail)``.
The HTTP layer maps ``ErrorKind`` to status codes; nothing below the API
raises for an expected domain failure.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union


T = TypeVar("T")


class ErrorKind(str, Enum):
    """Caller-visible failure kinds."""

    DUPLICATE_KEY = "duplicate_key"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    MISMATCH = "mismatch"
    NOT_ACCEPTING = "not_accepting"
    INVALID_INPUT = "invalid_input"
    INVALID_CONTENT = "invalid_content"
    UNAUTHENTICATED = "unauthenticated"
    INVALID_CREDENTIALS = "invalid_credentials"
    NOT_VERIFIED = "not_verified"
    STORE_UNAVAILABLE = "store_unavailable"


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying the operation payload."""

    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed outcome: a kind plus a human-readable detail."""

    kind: ErrorKind
    detail: str

    @property
    def is_ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]
