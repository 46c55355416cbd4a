"""
Mapping of service results onto HTTP responses.
"""

from typing import TypeVar

from fastapi import HTTPException, status

from app.core.result import Err, ErrorKind, Result


T = TypeVar("T")

ERROR_STATUS = {
    ErrorKind.DUPLICATE_KEY: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.EXPIRED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.MISMATCH: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_ACCEPTING: status.HTTP_403_FORBIDDEN,
    ErrorKind.INVALID_INPUT: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.INVALID_CONTENT: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.NOT_VERIFIED: status.HTTP_403_FORBIDDEN,
    ErrorKind.STORE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def error_to_http(error: Err) -> HTTPException:
    """Build the HTTPException for a failed result."""
    headers = {"X-Error-Kind": error.kind.value}
    if error.kind in (ErrorKind.UNAUTHENTICATED, ErrorKind.INVALID_CREDENTIALS):
        headers["WWW-Authenticate"] = "Bearer"
    return HTTPException(
        status_code=ERROR_STATUS[error.kind],
        detail=error.detail,
        headers=headers,
    )


def unwrap(result: Result[T]) -> T:
    """
    Return the payload of an Ok result.

    Raises:
        HTTPException: For an Err, with the status mapped from its kind
    """
    if isinstance(result, Err):
        raise error_to_http(result)
    return result.value
