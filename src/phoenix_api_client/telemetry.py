"""Tracing and structured logging for the Phoenix API client.

Every HTTP request runs inside an ``http_request`` span carrying the method,
URL and response status; failures record the client error code. Logging
goes through structlog.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from .errors import PhoenixApiError

if TYPE_CHECKING:
    from collections.abc import Generator

    import httpx

    from .config import TelemetryConfig

_INSTRUMENTATION_NAME = "phoenix-api-client"
_INSTRUMENTATION_VERSION = "0.1.0"

_tracer: trace.Tracer | None = None
_logger: structlog.BoundLogger | None = None
_active_config: TelemetryConfig | None = None


def get_tracer() -> trace.Tracer:
    """Get or create the client tracer."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(_INSTRUMENTATION_NAME, _INSTRUMENTATION_VERSION)
    return _tracer


def get_logger() -> structlog.BoundLogger:
    """Get or create the client logger."""
    global _logger
    if _logger is None:
        _logger = structlog.get_logger(_INSTRUMENTATION_NAME)
    return _logger


def configure_telemetry(config: TelemetryConfig) -> None:
    """Apply ``config`` to the module tracer and logger.

    Every ``PhoenixApiClient`` calls this with ``ClientConfig.telemetry``.
    Re-applying the active configuration is a no-op.
    """
    global _tracer, _logger, _active_config

    if config == _active_config:
        return
    _active_config = config

    if not config.enabled:
        _tracer = trace.NoOpTracer()
        return

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            _log_level_to_int(config.log_level)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
    )

    if config.trace_requests:
        _tracer = trace.get_tracer(config.service_name, _INSTRUMENTATION_VERSION)
    else:
        _tracer = trace.NoOpTracer()
    _logger = structlog.get_logger(config.service_name)


def _log_level_to_int(level: str) -> int:
    """Numeric level for ``level``; unknown names fall back to INFO."""
    return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)


@contextmanager
def trace_operation(
    name: str,
    *,
    attributes: dict[str, Any] | None = None,
) -> Generator[trace.Span, None, None]:
    """Run the block inside a span named ``name``.

    Client errors tag the span with ``phoenix.error_code`` and, when the API
    answered, ``http.status_code`` before being re-raised.
    """
    with get_tracer().start_as_current_span(name, attributes=attributes) as span:
        try:
            yield span
        except PhoenixApiError as e:
            span.set_attribute("phoenix.error_code", str(e.code))
            if e.status_code is not None:
                span.set_attribute("http.status_code", e.status_code)
            span.set_status(Status(StatusCode.ERROR, e.message))
            raise
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise


def record_response(span: trace.Span, response: httpx.Response) -> None:
    """Tag ``span`` with the status of a successful response."""
    span.set_attribute("http.status_code", response.status_code)
