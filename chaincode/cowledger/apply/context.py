"""
Transaction context for ledger handlers.

A TransactionContext is the unit of work for one invocation. Handlers
read through it and stage writes on it; nothing reaches the store until
commit(), which flushes every staged write with one write_batch() call.

Invariants:
    - Reads see the transaction's own staged writes (read-your-writes)
    - A handler that raises before commit() leaves the store untouched
    - Staged writes are flushed in the order they were last staged, so the
      record saved last (the one the transaction is "about") lands last
    - One context per invocation; contexts are never reused

How to change safely:
    - Keep validation in handlers ahead of any save()
    - Do not call the store directly from handlers that write
"""

from __future__ import annotations

import logging
from typing import Optional

from ..errors import NotFoundError
from ..schema.codec import E, Entity, decode, encode
from ..store.base import KeyValueStore

logger = logging.getLogger(__name__)


class TransactionContext:
    """Buffered view of the store for a single transaction.

    Attributes:
        store: Backing key-value store
        function: Name of the transaction being executed

    Example:
        >>> ctx = TransactionContext(store, "addRemark")
        >>> cow = ctx.load(Cow, "COW0")
        >>> cow.add_remark("note", "ok")
        >>> ctx.save("COW0", cow)
        >>> ctx.commit()
    """

    def __init__(self, store: KeyValueStore, function: str) -> None:
        self.store = store
        self.function = function
        # key -> encoded value, or None for a staged delete
        self._staged: dict[str, Optional[bytes]] = {}
        self._committed = False

    def get_raw(self, key: str) -> bytes | None:
        """Read raw bytes, preferring this transaction's staged writes."""
        if key in self._staged:
            return self._staged[key]
        return self.store.get(key)

    def load(self, entity_cls: type[E], key: str) -> E:
        """Load and decode a record.

        Raises:
            NotFoundError: If the key is absent
            CorruptRecordError: If the stored bytes are not a valid record
        """
        raw = self.get_raw(key)
        if raw is None:
            raise NotFoundError(
                f"{entity_cls.__name__} does not exist: {key}",
                key=key,
                entity=entity_cls.__name__,
            )
        return decode(entity_cls, key, raw)

    def save(self, key: str, entity: Entity) -> None:
        """Stage a whole-record overwrite."""
        self._staged.pop(key, None)
        self._staged[key] = encode(entity)

    def delete(self, key: str) -> None:
        """Stage a delete."""
        self._staged.pop(key, None)
        self._staged[key] = None

    @property
    def staged_keys(self) -> list[str]:
        return list(self._staged)

    def commit(self) -> None:
        """Flush staged writes atomically.

        Raises:
            StoreError: If the store rejects the batch
            RuntimeError: If the context was already committed
        """
        if self._committed:
            raise RuntimeError(f"Transaction {self.function} already committed")
        self._committed = True

        if not self._staged:
            return

        puts = [(k, v) for k, v in self._staged.items() if v is not None]
        deletes = [k for k, v in self._staged.items() if v is None]
        self.store.write_batch(puts, deletes)

        logger.debug(
            "Committed transaction",
            extra={
                "function": self.function,
                "puts": [k for k, _ in puts],
                "deletes": deletes,
            },
        )
