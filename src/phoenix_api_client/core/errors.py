"""Centralized error factory for the Phoenix API client.

Turns httpx responses and transport exceptions into the client's error
hierarchy so the retry policy only ever deals with one set of types.
"""

from __future__ import annotations

import uuid
from typing import Any

import httpx

from ..errors import (
    NetworkError,
    PhoenixApiError,
    RateLimitedError,
    TerminalRequestError,
    TimeoutError,
    TransientServerError,
    UnauthorizedError,
)

DEFAULT_RETRY_AFTER = 1


def decode_payload(response: httpx.Response) -> Any:
    """Decode a response body as JSON, falling back to text."""
    try:
        return response.json()
    except ValueError:
        return response.text or None


def retry_after_from_payload(payload: Any) -> float:
    """Read ``@error.@rateLimit.Retry-After`` seconds from an error payload.

    Falls back to one second when the payload does not carry it.
    """
    try:
        value = payload["@error"]["@rateLimit"]["Retry-After"]
    except (KeyError, TypeError):
        return DEFAULT_RETRY_AFTER
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return DEFAULT_RETRY_AFTER
    return seconds if seconds > 0 else DEFAULT_RETRY_AFTER


class ErrorFactory:
    """Centralized error creation with consistent structure."""

    @staticmethod
    def generate_correlation_id() -> str:
        """Generate a unique correlation ID."""
        return str(uuid.uuid4())

    @staticmethod
    def from_http_response(
        response: httpx.Response,
        *,
        correlation_id: str | None = None,
    ) -> PhoenixApiError:
        """Create client error from a non-2xx HTTP response.

        Args:
            response: HTTP response object.
            correlation_id: Optional correlation ID for tracing.

        Returns:
            Appropriate PhoenixApiError subclass carrying status and payload.
        """
        status = response.status_code
        correlation_id = correlation_id or ErrorFactory.generate_correlation_id()
        payload = decode_payload(response)

        if status == 401:
            return UnauthorizedError(payload=payload, correlation_id=correlation_id)

        if status == 429:
            return RateLimitedError(
                retry_after=retry_after_from_payload(payload),
                payload=payload,
                correlation_id=correlation_id,
            )

        if 500 <= status <= 599:
            return TransientServerError(
                f"Server error: {status}",
                status_code=status,
                payload=payload,
                correlation_id=correlation_id,
            )

        return TerminalRequestError(
            f"Request failed with status {status}",
            status_code=status,
            payload=payload,
            correlation_id=correlation_id,
        )

    @staticmethod
    def from_exception(
        exc: Exception,
        *,
        correlation_id: str | None = None,
    ) -> PhoenixApiError:
        """Create client error from an exception raised by the transport.

        Args:
            exc: Original exception.
            correlation_id: Optional correlation ID for tracing.

        Returns:
            Appropriate PhoenixApiError subclass.
        """
        correlation_id = correlation_id or ErrorFactory.generate_correlation_id()

        if isinstance(exc, PhoenixApiError):
            if exc.correlation_id is None:
                exc.correlation_id = correlation_id
            return exc

        if isinstance(exc, httpx.TimeoutException):
            return TimeoutError(
                f"Request timed out: {exc}",
                correlation_id=correlation_id,
                cause=exc,
            )

        if isinstance(exc, httpx.HTTPStatusError):
            return ErrorFactory.from_http_response(
                exc.response,
                correlation_id=correlation_id,
            )

        if isinstance(exc, httpx.HTTPError):
            return NetworkError(
                f"HTTP error: {exc}",
                correlation_id=correlation_id,
                cause=exc,
            )

        return NetworkError(
            f"Unexpected error: {exc}",
            correlation_id=correlation_id,
            cause=exc,
        )
