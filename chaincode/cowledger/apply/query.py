"""
Query engine for the Cow Ledger.

Two read paths:
- get(): point lookup of raw bytes by type token and key
- list_all(): lazy range scan of every record of one type

Listing uses the key schema's scan window (<PREFIX>0 .. <PREFIX>999999),
so results come back in the store's byte order, e.g. COW0, COW1, COW10,
COW2. Consumers paginating over a listing depend on that order.

Invariants:
    - The store scan is closed on every exit path of list_all()
    - list_all() is one-shot; iterate it again by calling it again
    - get() never decodes; it hands back what the store holds
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator

from ..schema.codec import ENTITY_TYPES, Entity, decode
from ..schema.keys import KeyType
from ..store.base import KeyValueStore

logger = logging.getLogger(__name__)


class QueryEngine:
    """Read-only access to ledger records.

    Example:
        >>> engine = QueryEngine(store)
        >>> engine.get("COW", "COW0")
        b'{"Id_no":...}'
        >>> [key for key, _ in engine.list_all(KeyType.COW)]
        ['COW0', 'COW1']
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def get(self, type_token: str, key: str) -> bytes | None:
        """Point lookup.

        Args:
            type_token: Record type token, e.g. "COW" or "OWNER"
            key: Storage key

        Returns:
            Stored bytes, or None when the key is absent

        Raises:
            ValidationError: If the type token is not recognized
        """
        KeyType.from_token(type_token)
        return self.store.get(key)

    def list_all(self, key_type: KeyType) -> Iterator[tuple[str, Entity]]:
        """Yield (key, record) for every listable record of a type.

        Raises:
            CorruptRecordError: If a record in the range fails to decode
        """
        start, end = key_type.scan_bounds()
        entity_cls = ENTITY_TYPES[key_type]
        scan = self.store.scan(start, end)
        count = 0
        try:
            for kv in scan:
                yield kv.key, decode(entity_cls, kv.key, kv.value)
                count += 1
        finally:
            scan.close()
            logger.debug(
                "Closed listing scan",
                extra={"type": key_type.value, "yielded": count},
            )

    def list_all_json(self, key_type: KeyType) -> bytes:
        """Encode a full listing as [{"Key": ..., "Record": {...}}, ...]."""
        results = [
            {"Key": key, "Record": record.to_dict()}
            for key, record in self.list_all(key_type)
        ]
        logger.info(
            "Listed records",
            extra={"type": key_type.value, "count": len(results)},
        )
        return json.dumps(results, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
