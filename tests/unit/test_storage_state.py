"""Tests for the world state store backends."""

import sqlite3
from unittest.mock import Mock

import pytest

from carledger.errors import StoreError
from carledger.storage.state import (
    InMemoryStateStore,
    SQLiteStateStore,
    StoreConfig,
)


@pytest.fixture(params=["memory", "sqlite"])
def store(request):
    """Each backend behind the same interface."""
    if request.param == "memory":
        backend = InMemoryStateStore()
    else:
        backend = SQLiteStateStore(StoreConfig(database_path=":memory:"))
        backend.connect()
    yield backend
    backend.close()


class TestStateStore:
    """Behaviour shared by every backend."""

    def test_get_missing(self, store):
        """Test that a missing key reads as None."""
        assert store.get("car1") is None

    def test_put_and_get(self, store):
        """Test storing and reading a value."""
        store.put("car1", b'{"ID":"car1"}')

        assert store.get("car1") == b'{"ID":"car1"}'

    def test_empty_value_distinct_from_missing(self, store):
        """Test that an empty value is not reported as absent."""
        store.put("k", b"")

        assert store.get("k") == b""

    def test_overwrite(self, store):
        """Test that a put replaces the previous value."""
        store.put("car1", b"old")
        store.put("car1", b"new")

        assert store.get("car1") == b"new"
        assert [key for key, _ in store.range_scan("", None)] == ["car1"]

    def test_delete(self, store):
        """Test deleting a key."""
        store.put("car1", b"v")
        store.delete("car1")

        assert store.get("car1") is None

    def test_delete_missing_is_noop(self, store):
        """Test deleting an absent key."""
        store.delete("nothing")

        assert store.get("nothing") is None

    def test_range_scan_order_and_bounds(self, store):
        """Test that scans are half-open and ordered."""
        for key in ["b", "a", "d", "c"]:
            store.put(key, key.encode())

        assert [key for key, _ in store.range_scan("b", "d")] == ["b", "c"]
        assert [key for key, _ in store.range_scan("b", None)] == ["b", "c", "d"]

    def test_range_scan_composite_keys(self, store):
        """Test ordering of keys containing NUL separators."""
        keys = [
            "\x00idx\x00blue\x00person2\x00car9\x00",
            "\x00idx\x00blue\x00person1\x00car3\x00",
            "\x00idx\x00bluegreen\x00person1\x00car1\x00",
            "\x00idx\x00blue\x00person1\x00car1\x00",
            "car1",
        ]
        for key in keys:
            store.put(key, b"\x00")

        start = "\x00idx\x00blue\x00"
        scanned = [key for key, _ in store.range_scan(start, start + "\U0010ffff")]

        assert scanned == [
            "\x00idx\x00blue\x00person1\x00car1\x00",
            "\x00idx\x00blue\x00person1\x00car3\x00",
            "\x00idx\x00blue\x00person2\x00car9\x00",
        ]

    def test_range_scan_non_ascii_keys(self, store):
        """Test that non-ASCII keys sort by code point."""
        for key in ["é", "z", "中"]:
            store.put(key, b"v")

        assert [key for key, _ in store.range_scan("", None)] == ["z", "é", "中"]

    def test_range_scan_is_snapshot(self, store):
        """Test that writes during iteration are not observed."""
        store.put("a", b"1")
        store.put("b", b"2")

        seen = []
        for key, _ in store.range_scan("", None):
            seen.append(key)
            store.put("c", b"3")
            store.delete("b")

        assert seen == ["a", "b"]

    def test_stats(self, store):
        """Test operation counters."""
        store.put("a", b"1")
        store.get("a")
        store.delete("a")
        list(store.range_scan("", None))

        stats = store.get_stats()

        assert stats.writes == 1
        assert stats.reads == 1
        assert stats.deletes == 1
        assert stats.scans == 1


class TestInMemoryStateStore:
    """In-memory specifics."""

    def test_len(self):
        """Test entry count."""
        store = InMemoryStateStore()
        store.put("a", b"1")
        store.put("b", b"2")
        store.delete("a")

        assert len(store) == 1

    def test_value_copied(self):
        """Test that stored values do not alias caller buffers."""
        store = InMemoryStateStore()
        buffer = bytearray(b"abc")
        store.put("a", buffer)
        buffer[0] = ord("z")

        assert store.get("a") == b"abc"


class TestSQLiteStateStore:
    """SQLite specifics."""

    def test_persistence(self, tmp_path):
        """Test that data survives reopening the database file."""
        path = str(tmp_path / "state" / "ledger.db")

        with SQLiteStateStore(StoreConfig(database_path=path)) as store:
            store.put("car1", b"persisted")

        with SQLiteStateStore(StoreConfig(database_path=path)) as store:
            assert store.get("car1") == b"persisted"

    def test_lazy_connect(self):
        """Test that the first operation opens the connection."""
        store = SQLiteStateStore()

        store.put("a", b"1")

        assert store.get("a") == b"1"
        store.close()

    def test_engine_failure_raises_store_error(self):
        """Test that sqlite errors are wrapped."""
        store = SQLiteStateStore()
        store._connection = Mock()
        store._connection.execute.side_effect = sqlite3.OperationalError("disk I/O error")

        with pytest.raises(StoreError) as exc_info:
            store.put("a", b"1")

        assert exc_info.value.operation == "put"
        assert exc_info.value.storage_type == "sqlite"
        assert isinstance(exc_info.value.cause, sqlite3.OperationalError)
        assert store.get_stats().writes == 0

    def test_close_is_idempotent(self):
        """Test closing twice."""
        store = SQLiteStateStore()
        store.connect()
        store.close()
        store.close()
