"""Test doubles shared by the unit and property tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import httpx

NOW_MS = 1_700_000_000_000
ACCOUNT_ID = 1234
NOW_S = NOW_MS // 1000


@dataclass
class _Timer:
    due_ms: float
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class FakeTimeline:
    """Clock and scheduler sharing one fake notion of time."""

    now_ms: float = NOW_MS
    timers: list[_Timer] = field(default_factory=list)

    def clock(self) -> float:
        return self.now_ms

    def call_later(self, delay: float, callback: Callable[[], None]) -> _Timer:
        timer = _Timer(self.now_ms + delay * 1000, callback)
        self.timers.append(timer)
        return timer

    @property
    def live_timers(self) -> list[_Timer]:
        return [t for t in self.timers if not t.cancelled]

    def advance(self, ms: float) -> None:
        self.now_ms += ms
        for timer in list(self.timers):
            if not timer.cancelled and timer.due_ms <= self.now_ms:
                self.timers.remove(timer)
                timer.callback()


class RecordingSleep:
    """Awaitable sleep that returns immediately and records delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class ScriptedTransport:
    """Answers requests from a script of responses, recording each request.

    Handlers are ``(method, path) -> list of responses``; the last response
    of a list repeats once the list is exhausted.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, *responses: httpx.Response) -> None:
        self.routes.setdefault((method, path), []).extend(responses)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r for r in self.requests if r.method == method and r.url.path == path
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        script = self.routes.get((request.method, request.url.path))
        if not script:
            return httpx.Response(404, json={"error": "not scripted"})
        if len(script) > 1:
            return script.pop(0)
        return script[0]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def json_response(status: int, body: Any = None) -> httpx.Response:
    """Build a JSON response."""
    if body is None:
        return httpx.Response(status)
    return httpx.Response(
        status,
        content=json.dumps(body).encode(),
        headers={"Content-Type": "application/json"},
    )


def rate_limited(retry_after: float | None = None) -> httpx.Response:
    """Build a 429 response with the API's rate-limit payload."""
    rate_limit = {} if retry_after is None else {"Retry-After": retry_after}
    return json_response(429, {"@error": {"@rateLimit": rate_limit}})


def access_token_info(expires_at: int | None = None, voip_id: int = ACCOUNT_ID) -> dict:
    """Body of ``GET /v4/oauth/access-token``."""
    body: dict[str, Any] = {"scope_details": [{"voip_id": voip_id}]}
    if expires_at is not None:
        body["expires_at"] = expires_at
    return body


class StubVerifier:
    """Identity token verifier returning canned claims."""

    def __init__(self, claims: dict[str, Any] | None = None) -> None:
        self.claims = claims
        self.verified: list[str] = []

    async def verify(self, token: str) -> dict[str, Any] | None:
        self.verified.append(token)
        return self.claims
