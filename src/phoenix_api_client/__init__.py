"""Phoenix API Python client."""

from .client import PhoenixApiClient
from .config import ClientConfig, PersistenceScope, TelemetryConfig
from .errors import (
    AntiForgeryMismatchError,
    ErrorCode,
    InvalidConfigError,
    NetworkError,
    PhoenixApiError,
    RateLimitedError,
    SessionExpiredError,
    TerminalRequestError,
    TransientServerError,
    UnauthorizedError,
)
from .events import ClientEvent
from .jwks import IdentityTokenVerifier
from .models import Page, Session
from .redirect import RedirectHost, StaticRedirectHost
from .storage import FileStorage, MemoryStorage, StorageBackend
from .telemetry import configure_telemetry

__all__ = [
    "PhoenixApiClient",
    "ClientConfig",
    "PersistenceScope",
    "TelemetryConfig",
    "AntiForgeryMismatchError",
    "ErrorCode",
    "InvalidConfigError",
    "NetworkError",
    "PhoenixApiError",
    "RateLimitedError",
    "SessionExpiredError",
    "TerminalRequestError",
    "TransientServerError",
    "UnauthorizedError",
    "ClientEvent",
    "IdentityTokenVerifier",
    "Page",
    "Session",
    "RedirectHost",
    "StaticRedirectHost",
    "FileStorage",
    "MemoryStorage",
    "StorageBackend",
    "configure_telemetry",
]

__version__ = "0.1.0"
