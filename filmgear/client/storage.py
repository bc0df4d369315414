# FilmGear Booking - Film Equipment Booking and Inventory System
# Copyright (C) 2025 Oleg Tokmakov
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.


"""Persisted client-side state.

The client keeps three values between runs: the session ``token``, the list
of ``recentSearches`` and the QR ``scanHistory``. Storage backends are
injected so that the services never touch a global store directly.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
RECENT_SEARCHES_KEY = "recentSearches"
SCAN_HISTORY_KEY = "scanHistory"

MAX_RECENT_SEARCHES = 10
MAX_SCAN_HISTORY = 50


class Storage(Protocol):
    """Minimal key-value interface used by the client."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    """Process-local storage, mostly for tests and scripts."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStorage:
    """Storage backed by a JSON file.

    The file is read once when the storage is created and rewritten on every
    change. A missing or unreadable file starts an empty store.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable client storage %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self._data, f, indent=2)

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._save()

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._save()


def push_recent_search(storage: Storage, term: str) -> List[str]:
    """Record a search term, most recent first, without duplicates."""
    term = term.strip()
    searches = list(storage.get(RECENT_SEARCHES_KEY) or [])
    if not term:
        return searches

    searches = [term] + [s for s in searches if s != term]
    searches = searches[:MAX_RECENT_SEARCHES]
    storage.set(RECENT_SEARCHES_KEY, searches)
    return searches


def push_scan(storage: Storage, entry: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Append a scan to the history, keeping the newest entries."""
    history = list(storage.get(SCAN_HISTORY_KEY) or [])
    history.append(entry)
    history = history[-MAX_SCAN_HISTORY:]
    storage.set(SCAN_HISTORY_KEY, history)
    return history
