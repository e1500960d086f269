"""Retry policy and HTTP execution for the Phoenix API client.

Every authenticated call goes through ``RetryPolicy.execute``; it is the
only place that decides whether a failed request is replayed.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeVar

import httpx

from ..errors import (
    PhoenixApiError,
    RateLimitedError,
    SessionExpiredError,
    TransientServerError,
)
from ..events import ClientEvent, EventEmitter
from ..telemetry import get_logger, record_response, trace_operation
from .errors import ErrorFactory, decode_payload

if TYPE_CHECKING:
    from ..config import ClientConfig
    from .session_store import SessionStore

T = TypeVar("T")


class RetryPolicy:
    """Classifies failures and replays the operation when allowed.

    On failure, in order:

    1. 401 while the session is locally expired: the session is expired and
       the call either resolves through ``expired_fallback`` or raises
       ``SessionExpiredError``. Never retried.
    2. 429 with ``handle_rate_limit``: wait ``Retry-After`` seconds and try
       again with the same attempt number. There is no upper bound on
       these retries, so a call can stall for as long as the server keeps
       rate limiting it; wrap the call in ``asyncio.timeout`` to bound it.
    3. 5xx while ``attempt <= max_server_error_attempts``: wait
       ``server_error_delay`` seconds and try again as the next attempt.
    4. Anything else is reported to the ``error`` listener and re-raised.
    """

    def __init__(
        self,
        config: ClientConfig,
        session_store: SessionStore,
        *,
        events: EventEmitter | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize retry policy.

        Args:
            config: Client configuration.
            session_store: Store consulted and expired on 401 responses.
            events: Emitter receiving terminal failures.
            sleep: Awaitable sleep used between attempts.
        """
        self.config = config
        self._store = session_store
        self._events = events or EventEmitter()
        self._sleep = sleep
        self._logger = get_logger()

    async def execute(
        self,
        op: Callable[[], Awaitable[T]],
        *,
        expired_fallback: Callable[[], T] | None = None,
    ) -> T:
        """Run ``op`` until it succeeds or fails terminally.

        Args:
            op: Replayable operation raising ``PhoenixApiError`` on failure.
            expired_fallback: Produces the result when the session turned
                out to be expired; without it ``SessionExpiredError`` is raised.

        Returns:
            The operation's result.

        Raises:
            PhoenixApiError: The terminal failure, unchanged.
        """
        attempt = 1
        while True:
            try:
                return await op()
            except PhoenixApiError as e:
                if e.status_code == 401 and self._store.is_expired():
                    self._store.expire()
                    if expired_fallback is not None:
                        return expired_fallback()
                    raise SessionExpiredError(
                        payload=e.payload, correlation_id=e.correlation_id
                    ) from e

                if isinstance(e, RateLimitedError) and self.config.handle_rate_limit:
                    self._log_retry("Too many requests, retrying", attempt, e.retry_after)
                    await self._sleep(e.retry_after)
                    continue

                if (
                    isinstance(e, TransientServerError)
                    and attempt <= self.config.max_server_error_attempts
                ):
                    delay = self.config.server_error_delay
                    self._log_retry(
                        "Internal server error, retrying",
                        attempt,
                        delay,
                        str(e.status_code),
                    )
                    await self._sleep(delay)
                    attempt += 1
                    continue

                self._events.emit(ClientEvent.ERROR, e)
                raise

    def _log_retry(
        self,
        message: str,
        attempt: int,
        delay: float,
        error: str | None = None,
    ) -> None:
        """Log retry attempt."""
        self._logger.warning(
            message,
            attempt=attempt,
            delay=delay,
            error=error,
        )


class AsyncHTTPExecutor:
    """Sends single requests and runs them under the retry policy."""

    def __init__(self, client: httpx.AsyncClient, policy: RetryPolicy) -> None:
        """Initialize async HTTP executor.

        Args:
            client: Async HTTP client.
            policy: Retry policy applied to every request.
        """
        self._client = client
        self._policy = policy

    @property
    def policy(self) -> RetryPolicy:
        """Get retry policy."""
        return self._policy

    async def execute(
        self,
        method: str,
        url: str,
        *,
        binary: bool = False,
        expired_fallback: Callable[[], Any] | None = None,
        **kwargs: Any,
    ) -> Any:
        """Execute HTTP request with retry logic.

        Args:
            method: HTTP method.
            url: Request URL.
            binary: Return the raw body instead of decoded JSON.
            expired_fallback: See ``RetryPolicy.execute``.
            **kwargs: Additional ``httpx.AsyncClient.request`` arguments.

        Returns:
            Decoded response payload, or bytes when ``binary``.
        """

        async def op() -> Any:
            return await self._execute_single(method, url, binary=binary, **kwargs)

        return await self._policy.execute(op, expired_fallback=expired_fallback)

    async def _execute_single(
        self,
        method: str,
        url: str,
        *,
        binary: bool = False,
        **kwargs: Any,
    ) -> Any:
        """Execute single HTTP request.

        Raises:
            PhoenixApiError: For non-2xx responses and transport failures.
        """
        with trace_operation(
            "http_request",
            attributes={"http.method": method.upper(), "http.url": url},
        ) as span:
            try:
                response = await self._client.request(method.upper(), url, **kwargs)
            except httpx.HTTPError as e:
                raise ErrorFactory.from_exception(e) from e

            if not response.is_success:
                raise ErrorFactory.from_http_response(response)
            record_response(span, response)

            if binary:
                return response.content
            if not response.content:
                return None
            return decode_payload(response)
