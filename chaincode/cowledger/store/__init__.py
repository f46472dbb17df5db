"""
Key-value store abstraction for the Cow Ledger.

This module provides a pluggable store interface supporting:
- SQLite (durable, used by the server and CLI)
- In-memory (for testing)

The store owns durable state. Ledger records are plain values in it;
nothing here knows about cows or owners.

Invariants:
    - scan() is half-open and byte-ordered in every backend
    - write_batch() is all-or-nothing
    - Backends only raise StoreError

How to change safely:
    - New backends must implement the KeyValueStore protocol
    - Run the shared store tests against every backend
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import (
    KeyValue,
    KeyValueStore,
    StoreClosedError,
    StoreError,
    StoreScan,
)
from .memory import InMemoryKeyValueStore
from .sqlite import SqliteKeyValueStore

if TYPE_CHECKING:
    from ..config import StorageConfig


def create_store(config: StorageConfig) -> KeyValueStore:
    """Factory function to create a store from configuration.

    Args:
        config: Storage configuration

    Returns:
        Appropriate KeyValueStore implementation

    Raises:
        ValueError: If backend is not supported
    """
    from ..config import StoreBackend

    if config.backend == StoreBackend.MEMORY:
        return InMemoryKeyValueStore()
    elif config.backend == StoreBackend.SQLITE:
        store = SqliteKeyValueStore(
            data_dir=config.data_dir,
            db_name=config.db_name,
            wal_mode=config.wal_mode,
            busy_timeout_ms=config.busy_timeout_ms,
        )
        store.initialize()
        return store
    else:
        raise ValueError(f"Unsupported store backend: {config.backend}")


__all__ = [
    # Protocol and types
    "KeyValueStore",
    "KeyValue",
    "StoreScan",
    "StoreError",
    "StoreClosedError",
    # Factory
    "create_store",
    # Implementations
    "InMemoryKeyValueStore",
    "SqliteKeyValueStore",
]
