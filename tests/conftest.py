"""
Shared test fixtures for the Phoenix API client tests.

Provides a fake clock/scheduler, a recording sleep, HTTP mocking
through ``httpx.MockTransport`` and common configuration.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
from hypothesis import settings

from phoenix_api_client.client import PhoenixApiClient
from phoenix_api_client.config import ClientConfig, TelemetryConfig
from phoenix_api_client.storage import MemoryStorage

from .helpers import FakeTimeline, RecordingSleep, ScriptedTransport

settings.register_profile("ci", max_examples=100)
settings.register_profile("dev", max_examples=50)
settings.load_profile("dev")


@pytest.fixture
def base_config() -> ClientConfig:
    """Provide a basic client configuration for testing."""
    return ClientConfig(
        client_id="test-client-id",
        telemetry=TelemetryConfig(enabled=False),
    )


@pytest.fixture
def timeline() -> FakeTimeline:
    return FakeTimeline()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def scripted() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def tab_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def browser_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def make_client(
    base_config: ClientConfig,
    timeline: FakeTimeline,
    recording_sleep: RecordingSleep,
    scripted: ScriptedTransport,
    tab_storage: MemoryStorage,
    browser_storage: MemoryStorage,
) -> Callable[..., PhoenixApiClient]:
    """Build clients wired to the fake timeline, sleep and transport."""

    def factory(config: ClientConfig | None = None, **kwargs: Any) -> PhoenixApiClient:
        options: dict[str, Any] = {
            "tab_storage": tab_storage,
            "browser_storage": browser_storage,
            "transport": scripted.transport,
            "clock": timeline.clock,
            "scheduler": timeline,
            "sleep": recording_sleep,
        }
        options.update(kwargs)
        return PhoenixApiClient(config or base_config, **options)

    return factory
