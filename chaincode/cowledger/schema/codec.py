"""
Record encoding for the Cow Ledger.

Records are stored as compact UTF-8 JSON objects using the wire field
names produced by each entity's to_dict(). Remarks are a JSON array, so
their order survives a round trip.
"""

from __future__ import annotations

import json
import logging
from typing import Any, TypeVar, Union

from ..errors import CorruptRecordError
from .keys import KeyType
from .types import Bundle, Certification, Cow, Owner, TagAttachment

logger = logging.getLogger(__name__)

Entity = Union[Cow, Owner, Certification, TagAttachment, Bundle]
E = TypeVar("E", Cow, Owner, Certification, TagAttachment, Bundle)

ENTITY_TYPES: dict[KeyType, type] = {
    KeyType.COW: Cow,
    KeyType.OWNER: Owner,
    KeyType.HACCP: Certification,
    KeyType.RFID: TagAttachment,
    KeyType.BUNDLE: Bundle,
}


def encode(entity: Entity) -> bytes:
    """Serialize an entity to stored bytes."""
    return json.dumps(entity.to_dict(), ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def decode(entity_cls: type[E], key: str, raw: bytes) -> E:
    """Deserialize stored bytes into an entity.

    Args:
        entity_cls: Expected entity class
        key: Storage key the bytes were read from (for error context)
        raw: Stored bytes

    Returns:
        Decoded entity

    Raises:
        CorruptRecordError: If the bytes are not a valid record of that class
    """
    try:
        data: Any = json.loads(raw.decode("utf-8"))
        if not isinstance(data, dict):
            raise TypeError(f"expected a JSON object, got {type(data).__name__}")
        return entity_cls.from_dict(data)
    except (UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError) as e:
        logger.warning(
            "Failed to decode record",
            extra={"key": key, "entity": entity_cls.__name__, "error": str(e)},
        )
        raise CorruptRecordError(
            f"Failed to decode {entity_cls.__name__} record at {key}: {e}",
            key=key,
            entity=entity_cls.__name__,
        ) from e


def decode_as(key_type: KeyType, key: str, raw: bytes) -> Entity:
    """Deserialize stored bytes into the entity class of a record type."""
    return decode(ENTITY_TYPES[key_type], key, raw)
