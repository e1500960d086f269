"""Token/session store for the Phoenix API client.

Owns the active session, persists it through a storage backend and keeps
exactly one expiration timer armed per session that carries an expiration.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Callable, Protocol

from pydantic import ValidationError

from ..models import Session
from ..telemetry import get_logger

if TYPE_CHECKING:
    from ..storage import StorageBackend

SESSION_SKEW_MS = 10_000
# Largest delay a single-shot timer accepts on the browser platform
MAX_TIMER_DELAY_MS = 2_147_483_647


class TimerHandle(Protocol):
    """Handle to a scheduled callback."""

    def cancel(self) -> None:
        """Cancel the callback if it has not run yet."""
        ...


class Scheduler(Protocol):
    """Schedules one-shot callbacks."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` after ``delay`` seconds."""
        ...


class AsyncioScheduler:
    """Schedules callbacks on the running asyncio event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


def system_clock_ms() -> float:
    """Current wall-clock time in epoch milliseconds."""
    return time.time() * 1000


class SessionStore:
    """Holds at most one active session per client."""

    def __init__(
        self,
        storage: StorageBackend,
        session_key: str,
        *,
        skew_ms: int = SESSION_SKEW_MS,
        clock: Callable[[], float] = system_clock_ms,
        scheduler: Scheduler | None = None,
        on_expired: Callable[[Session], None] | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            storage: Backend the serialized session is persisted to.
            session_key: Storage key of the serialized session.
            skew_ms: Margin subtracted from the expiration before expiring.
            clock: Returns the current time in epoch milliseconds.
            scheduler: Arms the expiration timer.
            on_expired: Called once with the session each time one expires.
        """
        self.storage = storage
        self.session_key = session_key
        self.skew_ms = skew_ms
        self.on_expired = on_expired
        self._clock = clock
        self._scheduler = scheduler or AsyncioScheduler()
        self._session: Session | None = None
        self._timer: TimerHandle | None = None
        self._logger = get_logger()

    @property
    def session(self) -> Session | None:
        """The active session, if any."""
        return self._session

    @property
    def timer_armed(self) -> bool:
        """Whether an expiration timer is pending."""
        return self._timer is not None

    def current_token(self) -> str | None:
        """Return the active bearer token, or ``None`` when anonymous."""
        return self._session.token if self._session else None

    def is_expired(self) -> bool:
        """Check whether the local clock considers the session expired.

        Sessions without an expiration never expire locally.
        """
        if self._session is None:
            return False
        remaining = self._session.expires_in_ms(self._clock(), self.skew_ms)
        return remaining is not None and remaining < 0

    def set_session(self, session: Session) -> None:
        """Replace the active session.

        A session with an expiration is persisted and gets a timer that
        fires ``skew_ms`` before it lapses. If that moment has already
        passed the session is expired right away instead.
        """
        self._cancel_timer()
        self._session = session

        remaining = session.expires_in_ms(self._clock(), self.skew_ms)
        if remaining is None:
            self.storage.remove(self.session_key)
            self._logger.info("Session installed", session_id=session.id)
            return

        if remaining <= 0:
            self._logger.info("Session already expired", session_id=session.id)
            self.expire()
            return

        self.storage.set(self.session_key, session.model_dump_json())
        delay_ms = min(remaining, MAX_TIMER_DELAY_MS)
        self._timer = self._scheduler.call_later(delay_ms / 1000, self._on_timer)
        self._logger.info(
            "Session installed",
            session_id=session.id,
            expires_in_ms=int(remaining),
        )

    def clear(self) -> None:
        """Drop the session and its persisted copy without notifying anyone."""
        self._cancel_timer()
        self._session = None
        self.storage.remove(self.session_key)

    def expire(self) -> None:
        """Force the active session to expire.

        Clears it like ``clear`` and then calls ``on_expired`` once. Does
        nothing when no session is active.
        """
        session = self._session
        if session is None:
            return
        self.clear()
        self._logger.info("Session expired", session_id=session.id)
        if self.on_expired is not None:
            self.on_expired(session)

    def restore(self) -> Session | None:
        """Install the persisted session if one exists and is still valid.

        Unreadable or stale copies are erased.

        Returns:
            The restored session, or ``None``.
        """
        raw = self.storage.get(self.session_key)
        if raw is None:
            return None

        try:
            session = Session.model_validate_json(raw)
        except ValidationError as e:
            self._logger.warning("Discarding unreadable session", error=str(e))
            self.storage.remove(self.session_key)
            return None

        remaining = session.expires_in_ms(self._clock(), self.skew_ms)
        if remaining is not None and remaining <= 0:
            self._logger.info("Discarding expired session", session_id=session.id)
            self.storage.remove(self.session_key)
            return None

        self.set_session(session)
        return self._session

    def _on_timer(self) -> None:
        self._timer = None
        self.expire()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
