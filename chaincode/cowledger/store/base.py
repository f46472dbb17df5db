"""
Base protocol and types for the key-value store abstraction.

This module defines the KeyValueStore protocol that all backends must
implement, along with the scan handle and store error types.

Invariants:
    - Keys are strings compared by their UTF-8 byte order
    - scan(start, end) is half-open: start <= key < end
    - A scan must be closed on every exit path; StoreScan is a context manager
    - write_batch() applies all puts and deletes or none of them

How to change safely:
    - Protocol changes require updating all implementations
    - Keep scan ordering identical across backends (tests rely on it)
    - Never raise ledger errors from here; backends only raise StoreError
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Protocol, runtime_checkable
import logging

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base exception for key-value store operations."""
    pass


class StoreClosedError(StoreError):
    """Operation attempted on a closed store or scan."""
    pass


@dataclass(frozen=True)
class KeyValue:
    """A single (key, value) pair yielded by a scan.

    Attributes:
        key: Storage key
        value: Raw stored bytes
    """
    key: str
    value: bytes


class StoreScan:
    """Closeable, one-shot iterator over a key range.

    Backends hand a row iterator plus a release callback; the callback runs
    exactly once, either when iteration is exhausted or when close() is
    called, whichever comes first.

    Example:
        >>> with store.scan("COW0", "COW999999") as rows:
        ...     for kv in rows:
        ...         print(kv.key)
    """

    def __init__(self, rows: Iterator[KeyValue], release=None) -> None:
        self._rows = rows
        self._release = release
        self._closed = False

    @property
    def closed(self) -> bool:
        """Whether the scan has been released."""
        return self._closed

    def __iter__(self) -> StoreScan:
        return self

    def __next__(self) -> KeyValue:
        if self._closed:
            raise StopIteration
        try:
            return next(self._rows)
        except StopIteration:
            self.close()
            raise

    def close(self) -> None:
        """Release the underlying cursor. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._release is not None:
            self._release()

    def __enter__(self) -> StoreScan:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


@runtime_checkable
class KeyValueStore(Protocol):
    """Protocol for key-value store backends.

    Ordering contract:
        - scan() yields keys in ascending byte order of their UTF-8 encoding
        - "COW10" sorts before "COW2"

    Atomicity contract:
        - put() and delete() are atomic per key
        - write_batch() is atomic across all keys it touches

    Example:
        >>> store = InMemoryKeyValueStore()
        >>> store.put("COW0", b"{}")
        >>> store.get("COW0")
        b'{}'
    """

    @abstractmethod
    def get(self, key: str) -> bytes | None:
        """Read a value.

        Returns:
            Stored bytes, or None when the key is absent

        Raises:
            StoreError: If the backend fails
        """
        ...

    @abstractmethod
    def put(self, key: str, value: bytes) -> None:
        """Write a value, replacing any existing one.

        Raises:
            StoreError: If the backend fails
        """
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a key.

        Returns:
            True if the key existed, False if it was absent

        Raises:
            StoreError: If the backend fails
        """
        ...

    @abstractmethod
    def scan(self, start_key: str, end_key: str) -> StoreScan:
        """Iterate keys in [start_key, end_key) in byte order.

        The returned scan must be closed by the caller.

        Raises:
            StoreError: If the backend fails
        """
        ...

    @abstractmethod
    def write_batch(
        self,
        puts: Iterable[tuple[str, bytes]] = (),
        deletes: Iterable[str] = (),
    ) -> None:
        """Apply several writes atomically.

        Raises:
            StoreError: If the backend fails; nothing is applied in that case
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Release backend resources."""
        ...
