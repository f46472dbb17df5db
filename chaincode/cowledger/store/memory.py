"""
In-memory key-value store implementation.

This module provides a sorted in-memory backend for:
- Unit tests
- Integration tests
- Local development without a database file

Invariants:
    - All data is lost on process exit
    - Provides the same ordering guarantees as the SQLite backend
    - Thread-safe for concurrent access

How to change safely:
    - Keep interface compatible with KeyValueStore protocol
    - Keep scan semantics half-open and byte-ordered
    - Add features to help with testing scenarios
"""

from __future__ import annotations

import bisect
import logging
import threading
from collections.abc import Iterable
from typing import Dict, List, Optional

from .base import KeyValue, StoreClosedError, StoreError, StoreScan

logger = logging.getLogger(__name__)


class InMemoryKeyValueStore:
    """In-memory implementation of KeyValueStore.

    Keys are kept in a sorted list next to a dict of values. Python string
    comparison orders by code point, which matches UTF-8 byte order, so
    scans sort exactly like the SQLite backend.

    Thread safety:
        A single lock guards the key list and the value map.

    Example:
        >>> store = InMemoryKeyValueStore()
        >>> store.put("COW1", b"a")
        >>> with store.scan("COW0", "COW999999") as rows:
        ...     [kv.key for kv in rows]
        ['COW1']
    """

    def __init__(self) -> None:
        self._keys: List[str] = []
        self._values: Dict[str, bytes] = {}
        self._lock = threading.Lock()
        self._closed = False
        self._open_scans = 0
        self._pending_failure: Optional[Exception] = None

    def _check_open(self) -> None:
        if self._closed:
            raise StoreClosedError("Store is closed")

    def _take_failure(self) -> None:
        if self._pending_failure is not None:
            exc, self._pending_failure = self._pending_failure, None
            raise exc

    def get(self, key: str) -> bytes | None:
        """Read a value, or None when absent."""
        with self._lock:
            self._check_open()
            return self._values.get(key)

    def put(self, key: str, value: bytes) -> None:
        """Write a value."""
        with self._lock:
            self._check_open()
            self._take_failure()
            self._put_locked(key, value)

    def delete(self, key: str) -> bool:
        """Remove a key, reporting whether it existed."""
        with self._lock:
            self._check_open()
            self._take_failure()
            return self._delete_locked(key)

    def scan(self, start_key: str, end_key: str) -> StoreScan:
        """Iterate keys in [start_key, end_key).

        Rows are captured when the scan is opened; later writes are not seen.
        """
        with self._lock:
            self._check_open()
            lo = bisect.bisect_left(self._keys, start_key)
            hi = bisect.bisect_left(self._keys, end_key)
            rows = [KeyValue(k, self._values[k]) for k in self._keys[lo:hi]]
            self._open_scans += 1

        logger.debug(
            "Opened in-memory scan",
            extra={"start_key": start_key, "end_key": end_key, "rows": len(rows)},
        )
        return StoreScan(iter(rows), release=self._release_scan)

    def write_batch(
        self,
        puts: Iterable[tuple[str, bytes]] = (),
        deletes: Iterable[str] = (),
    ) -> None:
        """Apply puts then deletes under one lock; all or nothing."""
        puts = list(puts)
        deletes = list(deletes)
        with self._lock:
            self._check_open()
            self._take_failure()
            for key, value in puts:
                if not isinstance(value, (bytes, bytearray)):
                    raise StoreError(f"Value for {key} must be bytes")
            for key, value in puts:
                self._put_locked(key, bytes(value))
            for key in deletes:
                self._delete_locked(key)

    def close(self) -> None:
        """Close the store and drop all data."""
        with self._lock:
            self._closed = True
            self._keys.clear()
            self._values.clear()
        logger.debug("InMemoryKeyValueStore closed")

    def _put_locked(self, key: str, value: bytes) -> None:
        if key not in self._values:
            bisect.insort(self._keys, key)
        self._values[key] = value

    def _delete_locked(self, key: str) -> bool:
        if key not in self._values:
            return False
        del self._values[key]
        idx = bisect.bisect_left(self._keys, key)
        del self._keys[idx]
        return True

    def _release_scan(self) -> None:
        with self._lock:
            self._open_scans -= 1

    # Testing helpers

    @property
    def open_scans(self) -> int:
        """Number of scans not yet closed (testing helper)."""
        return self._open_scans

    def keys(self) -> List[str]:
        """All keys in scan order (testing helper)."""
        with self._lock:
            return list(self._keys)

    def inject_failure(self, exception: Exception) -> None:
        """Make the next write operation raise this exception (testing helper)."""
        self._pending_failure = exception
