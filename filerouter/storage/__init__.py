"""Persistence backends for learned patterns and routing records."""

from filerouter.storage.base import KeyValueStore
from filerouter.storage.memory import MemoryKeyValueStore
from filerouter.storage.sqlite_store import SQLiteKeyValueStore

__all__ = ["KeyValueStore", "MemoryKeyValueStore", "SQLiteKeyValueStore"]
