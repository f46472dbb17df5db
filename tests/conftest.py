"""
Shared fixtures for the Cow Ledger test suite.
"""

import tempfile

import pytest

from chaincode.cowledger.apply import Ledger
from chaincode.cowledger.store import InMemoryKeyValueStore, SqliteKeyValueStore
from tests.builders import cow_args, owner_args


@pytest.fixture
def data_dir():
    """Create temporary data directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def memory_store():
    """Fresh in-memory store."""
    store = InMemoryKeyValueStore()
    yield store
    store.close()


@pytest.fixture
def sqlite_store(data_dir):
    """Initialized SQLite store in a temporary directory."""
    store = SqliteKeyValueStore(data_dir, wal_mode=False)
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def ledger(memory_store):
    """Ledger over an empty in-memory store."""
    return Ledger(memory_store)


@pytest.fixture
def owned_cow(ledger):
    """Ledger holding one farm owner (OWNER0) and one cow (COW0)."""
    assert ledger.invoke("registerOwner", owner_args()).success
    assert ledger.invoke("registerCow", cow_args()).success
    return ledger
