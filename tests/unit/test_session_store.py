"""Unit tests for the session store.

Tests timer arming, persistence, restore and forced expiry.
"""

from __future__ import annotations

import pytest

from phoenix_api_client.core.session_store import (
    MAX_TIMER_DELAY_MS,
    SESSION_SKEW_MS,
    SessionStore,
)
from phoenix_api_client.models import Session
from phoenix_api_client.storage import MemoryStorage

from ..helpers import FakeTimeline

KEY = "test-session"


@pytest.fixture
def expired_sessions() -> list[Session]:
    return []


@pytest.fixture
def store(
    timeline: FakeTimeline,
    tab_storage: MemoryStorage,
    expired_sessions: list[Session],
) -> SessionStore:
    return SessionStore(
        tab_storage,
        KEY,
        clock=timeline.clock,
        scheduler=timeline,
        on_expired=expired_sessions.append,
    )


def make_session(timeline: FakeTimeline, expires_in_ms: float | None) -> Session:
    expiration = None if expires_in_ms is None else int(timeline.now_ms + expires_in_ms)
    return Session(id=42, token="Bearer abc", expiration=expiration)


class TestSetSession:
    """Tests for installing sessions."""

    def test_anonymous_by_default(self, store: SessionStore) -> None:
        """A new store has no session and no token."""
        assert store.session is None
        assert store.current_token() is None
        assert not store.timer_armed

    def test_session_with_expiration_is_persisted_and_armed(
        self, store: SessionStore, timeline: FakeTimeline, tab_storage: MemoryStorage
    ) -> None:
        """Expiring sessions are persisted and get exactly one timer."""
        session = make_session(timeline, 3_600_000)

        store.set_session(session)

        assert store.current_token() == "Bearer abc"
        assert Session.model_validate_json(tab_storage.get(KEY)) == session
        assert len(timeline.live_timers) == 1
        timer = timeline.live_timers[0]
        assert timer.due_ms == session.expiration - SESSION_SKEW_MS

    def test_session_without_expiration_is_not_persisted(
        self, store: SessionStore, timeline: FakeTimeline, tab_storage: MemoryStorage
    ) -> None:
        """Sessions without expiration get no timer and no persisted copy."""
        store.set_session(make_session(timeline, None))

        assert store.current_token() == "Bearer abc"
        assert KEY not in tab_storage
        assert timeline.live_timers == []

    def test_replacing_session_cancels_previous_timer(
        self, store: SessionStore, timeline: FakeTimeline
    ) -> None:
        """At most one live timer per store."""
        store.set_session(make_session(timeline, 60_000))
        store.set_session(make_session(timeline, 120_000))

        assert len(timeline.live_timers) == 1
        assert timeline.live_timers[0].due_ms == timeline.now_ms + 120_000 - SESSION_SKEW_MS

    def test_already_expired_session_expires_immediately(
        self,
        store: SessionStore,
        timeline: FakeTimeline,
        tab_storage: MemoryStorage,
        expired_sessions: list[Session],
    ) -> None:
        """A session past its deadline is expired instead of armed."""
        session = make_session(timeline, -1)

        store.set_session(session)

        assert store.session is None
        assert expired_sessions == [session]
        assert timeline.live_timers == []
        assert KEY not in tab_storage

    def test_session_inside_skew_expires_immediately(
        self, store: SessionStore, timeline: FakeTimeline, expired_sessions: list[Session]
    ) -> None:
        """The skew is subtracted before deciding."""
        store.set_session(make_session(timeline, SESSION_SKEW_MS))

        assert store.session is None
        assert len(expired_sessions) == 1

    def test_delay_is_clamped_to_max_timer_delay(
        self, store: SessionStore, timeline: FakeTimeline
    ) -> None:
        """Far-future expirations do not overflow the timer."""
        store.set_session(make_session(timeline, MAX_TIMER_DELAY_MS * 10))

        timer = timeline.live_timers[0]
        assert timer.due_ms == pytest.approx(timeline.now_ms + MAX_TIMER_DELAY_MS)


class TestExpiry:
    """Tests for timer-driven and forced expiry."""

    def test_timer_expires_session_once(
        self,
        store: SessionStore,
        timeline: FakeTimeline,
        tab_storage: MemoryStorage,
        expired_sessions: list[Session],
    ) -> None:
        """When the timer fires the session is cleared and reported once."""
        session = make_session(timeline, 60_000)
        store.set_session(session)

        timeline.advance(60_000 - SESSION_SKEW_MS)

        assert store.session is None
        assert expired_sessions == [session]
        assert KEY not in tab_storage
        assert not store.timer_armed

        timeline.advance(3_600_000)
        assert expired_sessions == [session]

    def test_expire_without_session_is_noop(
        self, store: SessionStore, expired_sessions: list[Session]
    ) -> None:
        """No session, no notification."""
        store.expire()

        assert expired_sessions == []

    def test_clear_does_not_notify(
        self,
        store: SessionStore,
        timeline: FakeTimeline,
        tab_storage: MemoryStorage,
        expired_sessions: list[Session],
    ) -> None:
        """Voluntary clearing cancels the timer silently."""
        store.set_session(make_session(timeline, 60_000))

        store.clear()

        assert store.session is None
        assert timeline.live_timers == []
        assert KEY not in tab_storage
        assert expired_sessions == []

    def test_is_expired_uses_skew(self, store: SessionStore, timeline: FakeTimeline) -> None:
        """The local clock considers the session expired inside the skew."""
        store.set_session(make_session(timeline, 60_000))
        assert not store.is_expired()

        timeline.now_ms += 60_000 - SESSION_SKEW_MS + 1
        assert store.is_expired()

    def test_session_without_expiration_never_expires_locally(
        self, store: SessionStore, timeline: FakeTimeline
    ) -> None:
        store.set_session(make_session(timeline, None))
        timeline.now_ms += 10**12

        assert not store.is_expired()


class TestRestore:
    """Tests for restoring persisted sessions."""

    def test_restore_round_trip(
        self, timeline: FakeTimeline, tab_storage: MemoryStorage
    ) -> None:
        """A new store restores an equivalent session."""
        first = SessionStore(tab_storage, KEY, clock=timeline.clock, scheduler=timeline)
        session = make_session(timeline, 3_600_000)
        first.set_session(session)

        second = SessionStore(tab_storage, KEY, clock=timeline.clock, scheduler=timeline)
        restored = second.restore()

        assert restored == session
        assert second.session == session
        assert second.timer_armed

    def test_restore_nothing_persisted(self, store: SessionStore) -> None:
        assert store.restore() is None
        assert store.session is None

    def test_restore_discards_expired_copy(
        self,
        store: SessionStore,
        timeline: FakeTimeline,
        tab_storage: MemoryStorage,
        expired_sessions: list[Session],
    ) -> None:
        """Stale copies are erased without firing expiry."""
        stale = make_session(timeline, -60_000)
        tab_storage.set(KEY, stale.model_dump_json())

        assert store.restore() is None
        assert KEY not in tab_storage
        assert expired_sessions == []

    def test_restore_discards_unreadable_copy(
        self, store: SessionStore, tab_storage: MemoryStorage
    ) -> None:
        """Corrupt copies are erased."""
        tab_storage.set(KEY, "{not json")

        assert store.restore() is None
        assert KEY not in tab_storage
