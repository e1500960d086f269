"""Address-bar abstraction used by the OAuth redirect handling."""

from __future__ import annotations

from typing import Protocol, runtime_checkable
from urllib.parse import urlsplit, urlunsplit


@runtime_checkable
class RedirectHost(Protocol):
    """The page the client runs in."""

    @property
    def url(self) -> str:
        """Current URL, fragment included."""
        ...

    def replace_url(self, url: str) -> None:
        """Rewrite the visible URL without reloading (history replace)."""
        ...

    def navigate(self, url: str) -> None:
        """Leave the page for another URL."""
        ...


class StaticRedirectHost:
    """In-memory redirect host.

    Useful for server-side rendering of the sign-in link, command-line tools
    that receive the redirect URL from the user, and tests.
    """

    def __init__(self, url: str) -> None:
        self._url = url
        self.history: list[str] = [url]
        self.navigations: list[str] = []

    @property
    def url(self) -> str:
        return self._url

    def replace_url(self, url: str) -> None:
        self._url = url
        self.history[-1] = url

    def navigate(self, url: str) -> None:
        self.navigations.append(url)


def fragment_of(url: str) -> str:
    """The fragment of a URL, without the leading ``#``."""
    return urlsplit(url).fragment


def origin_of(url: str) -> str:
    """``scheme://host[:port]`` of a URL."""
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def strip_fragment(url: str) -> str:
    """The URL with its fragment removed, path and query kept."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, parts.query, ""))
