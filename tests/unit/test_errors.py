"""Unit tests for error classes.

Tests error hierarchy, serialization, and error codes.
"""

import pytest

from phoenix_api_client.errors import (
    AntiForgeryMismatchError,
    ErrorCode,
    InvalidConfigError,
    NetworkError,
    PhoenixApiError,
    RateLimitedError,
    SessionExpiredError,
    TerminalRequestError,
    TimeoutError,
    TransientServerError,
    UnauthorizedError,
)


class TestErrorCode:
    """Tests for ErrorCode enum."""

    def test_error_codes_are_strings(self) -> None:
        """Error codes should be string values."""
        assert ErrorCode.UNAUTHORIZED == "AUTH_1001"
        assert ErrorCode.INVALID_CONFIG == "CFG_2001"
        assert ErrorCode.NETWORK_ERROR == "NET_3001"
        assert ErrorCode.RATE_LIMITED == "RATE_4001"
        assert ErrorCode.SERVER_ERROR == "SRV_5001"
        assert ErrorCode.REQUEST_FAILED == "REQ_9001"

    def test_error_code_categories(self) -> None:
        """Error codes should follow category pattern."""
        assert ErrorCode.SESSION_EXPIRED.value.startswith("AUTH_1")
        assert ErrorCode.ANTI_FORGERY_MISMATCH.value.startswith("AUTH_1")
        assert ErrorCode.TIMEOUT_ERROR.value.startswith("NET_3")


class TestPhoenixApiError:
    """Tests for base PhoenixApiError."""

    def test_basic_error(self) -> None:
        """Should create error with message and code."""
        error = PhoenixApiError("Test error", ErrorCode.REQUEST_FAILED)

        assert str(error) == "Test error"
        assert error.message == "Test error"
        assert error.code == "REQ_9001"
        assert error.payload is None
        assert error.details == {}

    def test_error_with_payload(self) -> None:
        """Should keep the decoded response payload."""
        error = PhoenixApiError(
            "Bad request",
            ErrorCode.REQUEST_FAILED,
            status_code=400,
            payload={"@error": {"message": "bad"}},
        )

        assert error.status_code == 400
        assert error.payload == {"@error": {"message": "bad"}}

    def test_to_dict(self) -> None:
        """Should serialize to dictionary."""
        error = PhoenixApiError(
            "Test error",
            ErrorCode.SERVER_ERROR,
            status_code=502,
            payload="bad gateway",
            correlation_id="req-123",
            details={"extra": "info"},
        )

        assert error.to_dict() == {
            "error": "Test error",
            "code": "SRV_5001",
            "status_code": 502,
            "payload": "bad gateway",
            "correlation_id": "req-123",
            "details": {"extra": "info"},
        }

    def test_repr(self) -> None:
        """Should have useful repr."""
        repr_str = repr(PhoenixApiError("Test", ErrorCode.UNAUTHORIZED, status_code=401))

        assert "PhoenixApiError" in repr_str
        assert "AUTH_1001" in repr_str
        assert "401" in repr_str


class TestAuthErrors:
    """Tests for authentication errors."""

    def test_unauthorized_error(self) -> None:
        error = UnauthorizedError()

        assert error.code == "AUTH_1001"
        assert error.status_code == 401

    def test_session_expired_is_unauthorized(self) -> None:
        """SessionExpiredError is a 401 with its own code."""
        error = SessionExpiredError(payload={"error": "expired"})

        assert isinstance(error, UnauthorizedError)
        assert error.code == "AUTH_1002"
        assert error.status_code == 401
        assert error.payload == {"error": "expired"}

    def test_anti_forgery_mismatch(self) -> None:
        error = AntiForgeryMismatchError(expected="S", received="S2")

        assert error.message == '"state" parameter doesn\'t match'
        assert error.code == "AUTH_1003"
        assert error.status_code is None
        assert error.received == "S2"
        assert error.details == {"received": "S2"}


class TestRequestErrors:
    """Tests for HTTP and transport errors."""

    def test_terminal_request_error(self) -> None:
        error = TerminalRequestError(status_code=404, payload={"message": "missing"})

        assert error.code == "REQ_9001"
        assert error.status_code == 404

    def test_network_error_with_cause(self) -> None:
        """NetworkError should chain cause."""
        cause = ConnectionError("Connection refused")
        error = NetworkError("Failed to connect", cause=cause)

        assert isinstance(error, TerminalRequestError)
        assert error.code == "NET_3001"
        assert error.status_code is None
        assert error.__cause__ is cause
        assert "Connection refused" in error.details["cause"]

    def test_timeout_error(self) -> None:
        error = TimeoutError()

        assert isinstance(error, NetworkError)
        assert error.code == "NET_3002"

    def test_rate_limited_error(self) -> None:
        error = RateLimitedError(retry_after=60)

        assert error.code == "RATE_4001"
        assert error.status_code == 429
        assert error.retry_after == 60
        assert error.details["retry_after"] == 60

    def test_rate_limited_default_wait(self) -> None:
        assert RateLimitedError().retry_after == 1

    def test_transient_server_error_status(self) -> None:
        assert TransientServerError().status_code == 500
        assert TransientServerError(status_code=503).status_code == 503


class TestConfigError:
    """Tests for InvalidConfigError."""

    def test_invalid_config_with_field(self) -> None:
        error = InvalidConfigError("Invalid value", field="redirect_host")

        assert error.code == "CFG_2001"
        assert error.details["field"] == "redirect_host"


class TestErrorInheritance:
    """Tests for error inheritance."""

    def test_all_errors_inherit_from_base(self) -> None:
        """All errors should inherit from PhoenixApiError."""
        errors = [
            UnauthorizedError(),
            SessionExpiredError(),
            AntiForgeryMismatchError(),
            TerminalRequestError(),
            NetworkError(),
            TimeoutError(),
            RateLimitedError(),
            TransientServerError(),
            InvalidConfigError("test"),
        ]

        for error in errors:
            assert isinstance(error, PhoenixApiError)
            assert isinstance(error, Exception)

    def test_errors_are_catchable(self) -> None:
        """Errors should be catchable by base class."""
        with pytest.raises(PhoenixApiError):
            raise SessionExpiredError()

        with pytest.raises(PhoenixApiError):
            raise NetworkError()
