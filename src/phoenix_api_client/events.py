"""Caller-facing events.

One listener per event, as registered through ``PhoenixApiClient.on``.
Registering again replaces the previous listener; ``None`` removes it.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Callable

from .telemetry import get_logger


class ClientEvent(StrEnum):
    """Events a client emits."""

    SIGNED_OUT = "signed-out"
    SESSION_EXPIRED = "session-expired"
    ERROR = "error"


class EventEmitter:
    """Dispatches client events to their listeners."""

    def __init__(self) -> None:
        self._listeners: dict[ClientEvent, Callable[..., Any] | None] = {
            event: None for event in ClientEvent
        }
        self._logger = get_logger()

    def on(self, event: ClientEvent | str, callback: Callable[..., Any] | None) -> None:
        """Register the listener for an event.

        Raises:
            ValueError: If the event name is unknown.
        """
        self._listeners[ClientEvent(event)] = callback

    def has_listener(self, event: ClientEvent | str) -> bool:
        return self._listeners[ClientEvent(event)] is not None

    def emit(self, event: ClientEvent | str, *args: Any) -> None:
        """Invoke the listener for an event, if any."""
        event = ClientEvent(event)
        callback = self._listeners[event]
        if callback is None:
            return
        self._logger.debug("Emitting event", event=event.value)
        callback(*args)
