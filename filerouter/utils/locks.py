"""Per-key locking for read-modify-write operations on shared stores."""

import threading
from contextlib import contextmanager
from typing import Iterator


class KeyedLock:
    """
    Hands out one lock per key so writers on distinct keys never contend
    while writers on the same key are serialized.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._users: dict[str, int] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._users[key] = self._users.get(key, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[key] -= 1
                if self._users[key] == 0:
                    del self._users[key]
                    del self._locks[key]
