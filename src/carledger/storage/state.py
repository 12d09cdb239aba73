"""World state store backends for carledger.

A state store is an ordered key-value map with single-key writes. Keys are
strings, values are bytes, and range scans return entries in lexicographic
key order. Nothing here spans more than one key atomically.
"""

import bisect
import sqlite3
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from ..errors import StoreError
from ..logging import get_logger

logger = get_logger(__name__)


@dataclass
class StoreConfig:
    """State store configuration."""

    # Connection settings
    database_path: str = ":memory:"
    connection_timeout: float = 30.0

    # SQLite settings
    synchronous: str = "NORMAL"  # OFF, NORMAL, FULL
    journal_mode: str = "WAL"  # DELETE, TRUNCATE, MEMORY, WAL

    slow_query_threshold: float = 1.0  # seconds


@dataclass
class StoreStats:
    """Store operation counters."""

    reads: int = 0
    writes: int = 0
    deletes: int = 0
    scans: int = 0


class StateStore(ABC):
    """Abstract ordered key-value store."""

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Return the value stored at ``key``, or None if absent."""
        pass

    @abstractmethod
    def put(self, key: str, value: bytes) -> None:
        """Store ``value`` at ``key``."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``. Deleting an absent key is a no-op."""
        pass

    @abstractmethod
    def range_scan(
        self, start_key: str, end_key: Optional[str] = None
    ) -> Iterator[Tuple[str, bytes]]:
        """Iterate entries with ``start_key <= key < end_key`` in key order.

        ``end_key`` of None means unbounded. The entries are taken from a
        snapshot made when iteration starts; writes made while iterating are
        not reflected.
        """
        pass

    @abstractmethod
    def get_stats(self) -> StoreStats:
        """Get store statistics."""
        pass

    def close(self) -> None:
        """Release backend resources."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class InMemoryStateStore(StateStore):
    """Dictionary-backed store with a sorted key list for range scans."""

    def __init__(self):
        self._data: Dict[str, bytes] = {}
        self._keys: List[str] = []
        self._lock = threading.RLock()
        self._stats = StoreStats()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            self._stats.reads += 1
            return self._data.get(key)

    def put(self, key: str, value: bytes) -> None:
        with self._lock:
            if key not in self._data:
                bisect.insort(self._keys, key)
            self._data[key] = bytes(value)
            self._stats.writes += 1

    def delete(self, key: str) -> None:
        with self._lock:
            if key in self._data:
                del self._data[key]
                index = bisect.bisect_left(self._keys, key)
                del self._keys[index]
            self._stats.deletes += 1

    def range_scan(
        self, start_key: str, end_key: Optional[str] = None
    ) -> Iterator[Tuple[str, bytes]]:
        with self._lock:
            self._stats.scans += 1
            lo = bisect.bisect_left(self._keys, start_key)
            hi = (
                bisect.bisect_left(self._keys, end_key)
                if end_key is not None
                else len(self._keys)
            )
            snapshot = [(key, self._data[key]) for key in self._keys[lo:hi]]

        return iter(snapshot)

    def get_stats(self) -> StoreStats:
        with self._lock:
            return StoreStats(**vars(self._stats))

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class SQLiteStateStore(StateStore):
    """SQLite-backed store.

    Keys are stored as UTF-8 BLOBs so that SQLite's memcmp ordering matches
    Python string ordering and embedded NUL separators survive intact.
    """

    def __init__(self, config: StoreConfig = None):
        self.config = config or StoreConfig()
        self._connection: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        self._stats = StoreStats()

        if self.config.database_path != ":memory:":
            Path(self.config.database_path).parent.mkdir(parents=True, exist_ok=True)

    def connect(self) -> None:
        """Open the database and create the state table."""
        with self._lock:
            if self._connection is not None:
                return

            try:
                self._connection = sqlite3.connect(
                    self.config.database_path,
                    timeout=self.config.connection_timeout,
                    isolation_level=None,  # autocommit: one statement per write
                    check_same_thread=False,
                )
                self._connection.execute(
                    f"PRAGMA synchronous = {self.config.synchronous}"
                )
                if self.config.database_path != ":memory:":
                    self._connection.execute(
                        f"PRAGMA journal_mode = {self.config.journal_mode}"
                    )
                self._connection.execute(
                    """
                    CREATE TABLE IF NOT EXISTS world_state (
                        key BLOB PRIMARY KEY,
                        value BLOB NOT NULL
                    )
                    """
                )
                logger.info(f"Connected to state database: {self.config.database_path}")

            except sqlite3.Error as e:
                self._connection = None
                raise StoreError(
                    f"Failed to open state database: {e}",
                    storage_type="sqlite",
                    operation="connect",
                    cause=e,
                )

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._connection is not None:
                try:
                    self._connection.close()
                    logger.info("Disconnected from state database")
                except sqlite3.Error as e:
                    logger.error(f"Error closing state database: {e}")
                finally:
                    self._connection = None

    def _execute(self, operation: str, query: str, params: tuple) -> sqlite3.Cursor:
        if self._connection is None:
            self.connect()

        start_time = time.time()
        try:
            cursor = self._connection.execute(query, params)
        except sqlite3.Error as e:
            raise StoreError(
                f"State {operation} failed: {e}",
                storage_type="sqlite",
                operation=operation,
                cause=e,
            )

        execution_time = time.time() - start_time
        if execution_time > self.config.slow_query_threshold:
            logger.warning(f"Slow state {operation}: {execution_time:.3f}s")
        return cursor

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            self._stats.reads += 1
            row = self._execute(
                "get", "SELECT value FROM world_state WHERE key = ?", (_encode(key),)
            ).fetchone()
            return bytes(row[0]) if row is not None else None

    def put(self, key: str, value: bytes) -> None:
        with self._lock:
            self._execute(
                "put",
                "INSERT OR REPLACE INTO world_state (key, value) VALUES (?, ?)",
                (_encode(key), sqlite3.Binary(bytes(value))),
            )
            self._stats.writes += 1

    def delete(self, key: str) -> None:
        with self._lock:
            self._execute(
                "delete", "DELETE FROM world_state WHERE key = ?", (_encode(key),)
            )
            self._stats.deletes += 1

    def range_scan(
        self, start_key: str, end_key: Optional[str] = None
    ) -> Iterator[Tuple[str, bytes]]:
        with self._lock:
            self._stats.scans += 1
            if end_key is None:
                cursor = self._execute(
                    "scan",
                    "SELECT key, value FROM world_state WHERE key >= ? ORDER BY key",
                    (_encode(start_key),),
                )
            else:
                cursor = self._execute(
                    "scan",
                    "SELECT key, value FROM world_state "
                    "WHERE key >= ? AND key < ? ORDER BY key",
                    (_encode(start_key), _encode(end_key)),
                )
            rows = cursor.fetchall()

        return iter([(bytes(key).decode("utf-8"), bytes(value)) for key, value in rows])

    def get_stats(self) -> StoreStats:
        with self._lock:
            return StoreStats(**vars(self._stats))

    def __enter__(self):
        self.connect()
        return self


def _encode(key: str) -> bytes:
    return key.encode("utf-8")
