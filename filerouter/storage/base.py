"""Key-value substrate backing the learned pattern store and routing log."""

from abc import ABC, abstractmethod
from typing import Any, Iterator, Optional


class KeyValueStore(ABC):
    """
    Minimal persistence contract: get / set / delete / iterate-by-prefix.

    Values are JSON-serializable dicts. Implementations must be safe to call
    from several threads and must raise ``StoreUnavailableError`` when the
    underlying storage cannot be reached.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[dict[str, Any]]:
        """Return the value stored under ``key`` or None."""
        pass

    @abstractmethod
    def set(self, key: str, value: dict[str, Any]) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove ``key``. Returns True if something was removed."""
        pass

    @abstractmethod
    def iter_prefix(self, prefix: str) -> Iterator[tuple[str, dict[str, Any]]]:
        """Yield (key, value) pairs whose key starts with ``prefix``, ordered by key."""
        pass

    def close(self) -> None:
        """Release resources. No-op by default."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
