"""
Unit tests for tagged results and their HTTP mapping.
"""

import pytest
from fastapi import HTTPException, status

from app.api.errors import ERROR_STATUS, error_to_http, unwrap
from app.core.result import Err, ErrorKind, Ok


class TestResult:
    """Tests for Ok and Err."""

    def test_ok_carries_value(self):
        result = Ok(42)
        assert result.is_ok is True
        assert result.value == 42

    def test_err_carries_kind_and_detail(self):
        result = Err(ErrorKind.NOT_FOUND, "Message not found")
        assert result.is_ok is False
        assert result.kind is ErrorKind.NOT_FOUND
        assert result.detail == "Message not found"

    def test_results_compare_by_value(self):
        assert Ok("a") == Ok("a")
        assert Err(ErrorKind.EXPIRED, "x") == Err(ErrorKind.EXPIRED, "x")
        assert Err(ErrorKind.EXPIRED, "x") != Err(ErrorKind.MISMATCH, "x")


class TestErrorMapping:
    """Tests for Err to HTTPException conversion."""

    def test_every_kind_has_a_status(self):
        """Test that no error kind is left unmapped."""
        assert set(ERROR_STATUS) == set(ErrorKind)

    @pytest.mark.parametrize(
        "kind,expected",
        [
            (ErrorKind.DUPLICATE_KEY, status.HTTP_409_CONFLICT),
            (ErrorKind.NOT_FOUND, status.HTTP_404_NOT_FOUND),
            (ErrorKind.EXPIRED, status.HTTP_400_BAD_REQUEST),
            (ErrorKind.MISMATCH, status.HTTP_400_BAD_REQUEST),
            (ErrorKind.NOT_ACCEPTING, status.HTTP_403_FORBIDDEN),
            (ErrorKind.INVALID_CONTENT, 422),
            (ErrorKind.UNAUTHENTICATED, status.HTTP_401_UNAUTHORIZED),
            (ErrorKind.NOT_VERIFIED, status.HTTP_403_FORBIDDEN),
            (ErrorKind.STORE_UNAVAILABLE, status.HTTP_503_SERVICE_UNAVAILABLE),
        ],
    )
    def test_status_codes(self, kind, expected):
        exc = error_to_http(Err(kind, "detail"))
        assert exc.status_code == expected
        assert exc.headers["X-Error-Kind"] == kind.value

    def test_unauthenticated_sets_www_authenticate(self):
        exc = error_to_http(Err(ErrorKind.UNAUTHENTICATED, "Not authenticated"))
        assert exc.headers["WWW-Authenticate"] == "Bearer"

    def test_unwrap_ok(self):
        assert unwrap(Ok([1, 2])) == [1, 2]

    def test_unwrap_err_raises(self):
        with pytest.raises(HTTPException) as exc_info:
            unwrap(Err(ErrorKind.NOT_ACCEPTING, "User is not accepting messages"))

        assert exc_info.value.status_code == status.HTTP_403_FORBIDDEN
        assert exc_info.value.detail == "User is not accepting messages"
