"""
SQLite key-value store for the Cow Ledger.

This module persists the ledger in a single SQLite file holding one
table of (key, value) rows. It is the durable backend used by the
server and the CLI.

Invariants:
    - One SQLite file per ledger
    - key is the PRIMARY KEY and uses BINARY collation (byte order)
    - write_batch() runs inside one BEGIN IMMEDIATE transaction
    - Every scan owns its connection and closes it on release

How to change safely:
    - Schema migrations must be backward compatible
    - Keep scans lazy; never fetchall() an unbounded range
    - Wrap every sqlite3.Error in StoreError

Table schema:
    ledger_state:
        - key TEXT PRIMARY KEY
        - value BLOB NOT NULL
        - updated_at INTEGER (Unix ms)
"""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path

from .base import KeyValue, StoreClosedError, StoreError, StoreScan

logger = logging.getLogger(__name__)


class SqliteKeyValueStore:
    """SQLite-backed implementation of KeyValueStore.

    Thread safety:
        Each operation opens its own connection.
        SQLite handles concurrent access via WAL mode.

    Example:
        >>> store = SqliteKeyValueStore("/var/lib/cowledger")
        >>> store.initialize()
        >>> store.put("OWNER0", b"{}")
    """

    SCHEMA_VERSION = 1

    def __init__(
        self,
        data_dir: str,
        db_name: str = "ledger.db",
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
    ) -> None:
        """Initialize the store.

        Args:
            data_dir: Directory for the SQLite database file
            db_name: Database file name
            wal_mode: Enable SQLite WAL mode
            busy_timeout_ms: SQLite busy timeout
        """
        self.data_dir = Path(data_dir)
        self.db_name = db_name
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms
        self._closed = False
        self._initialized = False

    @property
    def db_path(self) -> Path:
        """Path to the database file."""
        return self.data_dir / self.db_name

    def _connect(self) -> sqlite3.Connection:
        if self._closed:
            raise StoreClosedError("Store is closed")
        if not self._initialized:
            self.initialize()

        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.busy_timeout_ms / 1000.0,
            isolation_level=None,  # Autocommit by default, explicit transactions
        )
        conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms}")
        if self.wal_mode:
            conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA synchronous = NORMAL")
        return conn

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Yield a configured connection, translating driver errors."""
        try:
            conn = self._connect()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to open ledger database: {e}") from e
        try:
            yield conn
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the database file and schema if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        try:
            conn = sqlite3.connect(str(self.db_path), isolation_level=None)
            try:
                conn.executescript("""
                    CREATE TABLE IF NOT EXISTS schema_version (
                        version INTEGER PRIMARY KEY,
                        applied_at INTEGER NOT NULL
                    );

                    CREATE TABLE IF NOT EXISTS ledger_state (
                        key TEXT PRIMARY KEY,
                        value BLOB NOT NULL,
                        updated_at INTEGER NOT NULL
                    );

                    INSERT OR IGNORE INTO schema_version (version, applied_at)
                    VALUES (1, strftime('%s', 'now') * 1000);
                """)
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to initialize ledger database: {e}") from e

        self._initialized = True
        logger.info(f"Initialized ledger database: {self.db_path}")

    def get(self, key: str) -> bytes | None:
        """Read a value, or None when absent."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT value FROM ledger_state WHERE key = ?", (key,)
            ).fetchone()
            return bytes(row[0]) if row else None

    def put(self, key: str, value: bytes) -> None:
        """Write a value."""
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO ledger_state (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                               updated_at = excluded.updated_at
                """,
                (key, sqlite3.Binary(value), int(time.time() * 1000)),
            )

    def delete(self, key: str) -> bool:
        """Remove a key, reporting whether it existed."""
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM ledger_state WHERE key = ?", (key,))
            return cursor.rowcount > 0

    def scan(self, start_key: str, end_key: str) -> StoreScan:
        """Iterate keys in [start_key, end_key) lazily.

        The connection stays open until the scan is exhausted or closed.
        """
        try:
            conn = self._connect()
        except sqlite3.Error as e:
            raise StoreError(f"Failed to open scan: {e}") from e
        try:
            cursor = conn.execute(
                """
                SELECT key, value FROM ledger_state
                WHERE key >= ? AND key < ?
                ORDER BY key
                """,
                (start_key, end_key),
            )
        except sqlite3.Error as e:
            conn.close()
            raise StoreError(f"Failed to open scan: {e}") from e

        def rows() -> Iterator[KeyValue]:
            while True:
                try:
                    row = cursor.fetchone()
                except sqlite3.Error as e:
                    raise StoreError(f"Scan failed: {e}") from e
                if row is None:
                    return
                yield KeyValue(row[0], bytes(row[1]))

        return StoreScan(rows(), release=conn.close)

    def write_batch(
        self,
        puts: Iterable[tuple[str, bytes]] = (),
        deletes: Iterable[str] = (),
    ) -> None:
        """Apply puts then deletes in a single transaction."""
        now = int(time.time() * 1000)
        with self._get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                for key, value in puts:
                    conn.execute(
                        """
                        INSERT INTO ledger_state (key, value, updated_at) VALUES (?, ?, ?)
                        ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                                       updated_at = excluded.updated_at
                        """,
                        (key, sqlite3.Binary(value), now),
                    )
                for key in deletes:
                    conn.execute("DELETE FROM ledger_state WHERE key = ?", (key,))
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise

    def close(self) -> None:
        """Mark the store closed; connections are per-operation."""
        self._closed = True

    def get_stats(self) -> dict[str, int]:
        """Get row count for the ledger."""
        with self._get_connection() as conn:
            cursor = conn.execute("SELECT COUNT(*) FROM ledger_state")
            return {"records": cursor.fetchone()[0]}
