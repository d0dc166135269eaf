"""In-process key-value store."""

import json
import threading
from typing import Any, Iterator, Optional

from .base import KeyValueStore


class MemoryKeyValueStore(KeyValueStore):
    """
    Dict-backed store, mainly for tests and ephemeral runs.

    Values are copied through JSON on the way in and out so callers never
    share mutable state with the store, the same as with a real backend.
    """

    def __init__(self):
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[dict[str, Any]]:
        with self._lock:
            raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: dict[str, Any]) -> None:
        raw = json.dumps(value)
        with self._lock:
            self._data[key] = raw

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def iter_prefix(self, prefix: str) -> Iterator[tuple[str, dict[str, Any]]]:
        with self._lock:
            items = sorted((k, v) for k, v in self._data.items() if k.startswith(prefix))
        for key, raw in items:
            yield key, json.loads(raw)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
