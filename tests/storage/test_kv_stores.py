"""Tests for the key-value persistence backends."""

import sqlite3
import threading

import pytest

from filerouter.errors import StoreUnavailableError
from filerouter.router.learned import LearnedPatternStore
from filerouter.router.records import RoutingRecordLog
from filerouter.storage.memory import MemoryKeyValueStore
from filerouter.storage.sqlite_store import SQLiteKeyValueStore


@pytest.fixture(params=["memory", "sqlite"])
def kv(request, tmp_path):
    if request.param == "memory":
        store = MemoryKeyValueStore()
    else:
        store = SQLiteKeyValueStore(tmp_path / "routing.db")
    yield store
    store.close()


class TestKeyValueStore:
    """Behaviour shared by every backend."""

    def test_get_missing(self, kv):
        assert kv.get("nope") is None

    def test_set_and_get(self, kv):
        kv.set("pattern:a", {"leaf_path": ["A", "B"], "times_confirmed": 2})
        assert kv.get("pattern:a") == {"leaf_path": ["A", "B"], "times_confirmed": 2}

    def test_set_overwrites(self, kv):
        kv.set("k", {"v": 1})
        kv.set("k", {"v": 2})
        assert kv.get("k") == {"v": 2}

    def test_values_are_copies(self, kv):
        value = {"items": [1]}
        kv.set("k", value)
        value["items"].append(2)

        loaded = kv.get("k")
        loaded["items"].append(3)

        assert kv.get("k") == {"items": [1]}

    def test_delete(self, kv):
        kv.set("k", {"v": 1})
        assert kv.delete("k") is True
        assert kv.delete("k") is False
        assert kv.get("k") is None

    def test_iter_prefix_ordered(self, kv):
        kv.set("record:b", {"n": 2})
        kv.set("record:a", {"n": 1})
        kv.set("pattern:x", {"n": 3})
        kv.set("records", {"n": 4})

        assert list(kv.iter_prefix("record:")) == [("record:a", {"n": 1}), ("record:b", {"n": 2})]

    def test_iter_prefix_with_wildcard_characters(self, kv):
        kv.set("project:P_1%:a", {"n": 1})
        kv.set("project:PX1a:b", {"n": 2})

        assert [k for k, _ in kv.iter_prefix("project:P_1%:")] == ["project:P_1%:a"]

    def test_unicode_keys(self, kv):
        kv.set("pattern:document:contabilità", {"n": 1})
        assert kv.get("pattern:document:contabilità") == {"n": 1}
        assert len(list(kv.iter_prefix("pattern:document:"))) == 1

    def test_context_manager(self, kv):
        with kv as store:
            store.set("k", {"v": 1})

    def test_concurrent_writes(self, kv):
        def write(start):
            for i in range(start, start + 50):
                kv.set(f"k:{i:04d}", {"i": i})

        threads = [threading.Thread(target=write, args=(n * 50,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(list(kv.iter_prefix("k:"))) == 200


class TestSQLiteKeyValueStore:
    """SQLite specifics."""

    def test_persists_across_instances(self, tmp_path):
        db = tmp_path / "nested" / "routing.db"
        with SQLiteKeyValueStore(db) as store:
            store.set("k", {"v": 1})

        with SQLiteKeyValueStore(db) as store:
            assert store.get("k") == {"v": 1}

    def test_tables_are_independent(self, tmp_path):
        db = tmp_path / "routing.db"
        patterns = SQLiteKeyValueStore(db, table="learned_patterns")
        records = SQLiteKeyValueStore(db, table="routing_records")

        patterns.set("k", {"store": "patterns"})

        assert records.get("k") is None
        patterns.close()
        records.close()

    def test_wal_mode(self, tmp_path):
        store = SQLiteKeyValueStore(tmp_path / "routing.db")
        store.set("k", {"v": 1})

        mode = store._get_connection().execute("PRAGMA journal_mode").fetchone()[0]

        assert mode.lower() == "wal"
        store.close()

    def test_invalid_table_name(self, tmp_path):
        with pytest.raises(ValueError):
            SQLiteKeyValueStore(tmp_path / "routing.db", table="kv; DROP TABLE x")

    def test_unavailable_database(self, tmp_path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("")
        store = SQLiteKeyValueStore(blocker / "routing.db")

        with pytest.raises(StoreUnavailableError):
            store.get("k")

    def test_read_error_wrapped(self, tmp_path):
        store = SQLiteKeyValueStore(tmp_path / "routing.db")
        store.set("k", {"v": 1})
        store._get_connection().execute(f"DROP TABLE {store.table}")

        with pytest.raises(StoreUnavailableError) as exc_info:
            store.get("k")

        assert isinstance(exc_info.value.__cause__, sqlite3.Error)
        store.close()

    def test_learning_survives_restart(self, tmp_path):
        """Patterns and records written by one process are seen by the next."""
        db = tmp_path / "routing.db"
        patterns = LearnedPatternStore(SQLiteKeyValueStore(db, table="learned_patterns"))
        patterns.confirm("document:fattura", ["9_PARCELLA"])
        patterns.confirm("document:fattura", ["9_PARCELLA"])
        patterns.kv.close()

        reopened = LearnedPatternStore(SQLiteKeyValueStore(db, table="learned_patterns"))
        log = RoutingRecordLog(SQLiteKeyValueStore(db, table="routing_records"), reopened)

        assert reopened.lookup("document:fattura").times_confirmed == 2
        assert log.count() == 0
