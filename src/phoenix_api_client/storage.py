"""Key/value persistence for sessions and anti-forgery state.

Two scopes mirror a browser: *tab* storage lives as long as the client's
process, *browser* storage is shared by every client pointed at the same
file. ``ScopedStorage`` picks the one a configuration asks for.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol, runtime_checkable

from .config import PersistenceScope


@runtime_checkable
class StorageBackend(Protocol):
    """Minimal string key/value store."""

    def get(self, key: str) -> str | None:
        """Return the stored value, or ``None``."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store a value."""
        ...

    def remove(self, key: str) -> None:
        """Forget a key. Missing keys are ignored."""
        ...


class MemoryStorage:
    """Process-local storage, the equivalent of a tab's session storage."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove(self, key: str) -> None:
        self._items.pop(key, None)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: object) -> bool:
        return key in self._items


class FileStorage:
    """Storage backed by a JSON document on disk.

    Every operation re-reads the file, so separate clients sharing a path
    see each other's writes the way browser tabs share local storage.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except ValueError:
            # Unreadable documents are treated as empty and overwritten
            return {}
        return data if isinstance(data, dict) else {}

    def _dump(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    def get(self, key: str) -> str | None:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._dump(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._dump(data)


class ScopedStorage:
    """Routes session reads and writes to the configured scope.

    The anti-forgery state always lives in browser-wide storage, because the
    sign-in round trip may come back in a different tab.
    """

    def __init__(
        self,
        scope: PersistenceScope,
        *,
        tab: StorageBackend | None = None,
        browser: StorageBackend | None = None,
    ) -> None:
        self.scope = PersistenceScope(scope)
        self.tab = tab if tab is not None else MemoryStorage()
        self.browser = browser if browser is not None else MemoryStorage()

    @property
    def selected(self) -> StorageBackend:
        """The backend for the configured persistence scope."""
        return self.tab if self.scope is PersistenceScope.TAB else self.browser

    def get(self, key: str) -> str | None:
        return self.selected.get(key)

    def set(self, key: str, value: str) -> None:
        self.selected.set(key, value)

    def remove(self, key: str) -> None:
        self.selected.remove(key)
