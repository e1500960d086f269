"""Core components for the Phoenix API client.

Session lifecycle, retry policy, pagination and URL building shared by
the client and the OAuth bootstrap.
"""

from __future__ import annotations

from .auth_builder import AuthorizationBuilder
from .errors import ErrorFactory
from .http_executor import AsyncHTTPExecutor, RetryPolicy
from .pagination import collect_all
from .session_store import SessionStore

__all__ = [
    "AuthorizationBuilder",
    "ErrorFactory",
    "AsyncHTTPExecutor",
    "RetryPolicy",
    "collect_all",
    "SessionStore",
]
