"""HTTP transport setup for the Phoenix API client."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from .config import ClientConfig

USER_AGENT = "phoenix-api-client/0.1.0 Python"


def create_async_http_client(
    config: ClientConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create configured async HTTP client.

    Args:
        config: Client configuration.
        transport: Optional transport, e.g. ``httpx.MockTransport`` in tests.

    Returns:
        Configured httpx.AsyncClient.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.timeout),
        headers={
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        },
        follow_redirects=False,
        transport=transport,
    )
