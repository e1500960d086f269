"""Error classes for the Phoenix API client.

Structured error hierarchy with error codes, the originating HTTP status
and the decoded response payload, so callers can inspect exactly what the
server answered.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standardized error codes for the Phoenix API client."""

    # Authentication errors (1xxx)
    UNAUTHORIZED = "AUTH_1001"
    SESSION_EXPIRED = "AUTH_1002"
    ANTI_FORGERY_MISMATCH = "AUTH_1003"

    # Configuration errors (2xxx)
    INVALID_CONFIG = "CFG_2001"

    # Network errors (3xxx)
    NETWORK_ERROR = "NET_3001"
    TIMEOUT_ERROR = "NET_3002"

    # Rate limiting (4xxx)
    RATE_LIMITED = "RATE_4001"

    # Server errors (5xxx)
    SERVER_ERROR = "SRV_5001"

    # Anything else the API rejected (9xxx)
    REQUEST_FAILED = "REQ_9001"


class PhoenixApiError(Exception):
    """Base error for the Phoenix API client."""

    def __init__(
        self,
        message: str,
        code: ErrorCode | str,
        *,
        status_code: int | None = None,
        payload: Any = None,
        correlation_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code if isinstance(code, str) else code.value
        self.status_code = status_code
        self.payload = payload
        self.correlation_id = correlation_id
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error": self.message,
            "code": self.code,
            "status_code": self.status_code,
            "payload": self.payload,
            "correlation_id": self.correlation_id,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(code={self.code!r}, "
            f"status_code={self.status_code!r}, message={self.message!r})"
        )


class TerminalRequestError(PhoenixApiError):
    """Request failed and will not be retried."""

    def __init__(
        self,
        message: str = "Request failed",
        *,
        status_code: int | None = None,
        payload: Any = None,
        correlation_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.REQUEST_FAILED,
            status_code=status_code,
            payload=payload,
            correlation_id=correlation_id,
            details=details,
        )


class NetworkError(TerminalRequestError):
    """Transport failed before any HTTP status was received."""

    def __init__(
        self,
        message: str = "Network request failed",
        *,
        correlation_id: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            message,
            correlation_id=correlation_id,
            details={"cause": str(cause)} if cause else None,
        )
        self.code = ErrorCode.NETWORK_ERROR.value
        self.__cause__ = cause


class TimeoutError(NetworkError):
    """Request timed out."""

    def __init__(
        self,
        message: str = "Request timed out",
        *,
        correlation_id: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, correlation_id=correlation_id, cause=cause)
        self.code = ErrorCode.TIMEOUT_ERROR.value


class UnauthorizedError(PhoenixApiError):
    """The API rejected the bearer token."""

    def __init__(
        self,
        message: str = "Unauthorized",
        *,
        payload: Any = None,
        correlation_id: str | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.UNAUTHORIZED,
            status_code=401,
            payload=payload,
            correlation_id=correlation_id,
        )


class SessionExpiredError(UnauthorizedError):
    """A 401 arrived after the local session had already expired."""

    def __init__(
        self,
        message: str = "Session has expired",
        *,
        payload: Any = None,
        correlation_id: str | None = None,
    ) -> None:
        super().__init__(message, payload=payload, correlation_id=correlation_id)
        self.code = ErrorCode.SESSION_EXPIRED.value


class AntiForgeryMismatchError(PhoenixApiError):
    """The ``state`` returned by the OAuth redirect does not match ours."""

    def __init__(
        self,
        message: str = '"state" parameter doesn\'t match',
        *,
        expected: str | None = None,
        received: str | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.ANTI_FORGERY_MISMATCH,
            details={"received": received} if received is not None else None,
        )
        self.expected = expected
        self.received = received


class RateLimitedError(PhoenixApiError):
    """Rate limit exceeded."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        retry_after: float = 1,
        payload: Any = None,
        correlation_id: str | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.RATE_LIMITED,
            status_code=429,
            payload=payload,
            correlation_id=correlation_id,
            details={"retry_after": retry_after},
        )
        self.retry_after = retry_after


class TransientServerError(PhoenixApiError):
    """Server-side error that may succeed on retry."""

    def __init__(
        self,
        message: str = "Server error",
        *,
        status_code: int = 500,
        payload: Any = None,
        correlation_id: str | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.SERVER_ERROR,
            status_code=status_code,
            payload=payload,
            correlation_id=correlation_id,
        )


class InvalidConfigError(PhoenixApiError):
    """Invalid client configuration."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.INVALID_CONFIG,
            details={"field": field} if field else None,
        )
