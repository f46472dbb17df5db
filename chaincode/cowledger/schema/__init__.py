"""
Schema module for the Cow Ledger.

This module provides the record model and how records are keyed and stored:
- Key schema (KeyType, scan bounds)
- Entity definitions (Cow, Owner, Certification, TagAttachment, Bundle)
- Owner subtype views (OwnerKind, *Profile)
- Record codec (encode/decode)

Invariants:
    - Wire field names never change once records are stored
    - Type prefixes are mutually non-overlapping
    - Decoding never guesses: a shape mismatch is a CorruptRecordError

How to change safely:
    - Add fields with defaults; keep old records decodable
    - Add owner subtypes by extending OwnerKind
"""

from .codec import ENTITY_TYPES, Entity, decode, decode_as, encode
from .keys import KeyType
from .types import (
    EMPTY,
    Bundle,
    Certification,
    Cow,
    FarmProfile,
    Owner,
    OwnerKind,
    ProcessorProfile,
    Remark,
    RetailerProfile,
    SlaughterhouseProfile,
    TagAttachment,
    find_remark,
)

__all__ = [
    # Keys
    "KeyType",
    # Entities
    "Remark",
    "Owner",
    "Cow",
    "Certification",
    "TagAttachment",
    "Bundle",
    "Entity",
    "EMPTY",
    "find_remark",
    # Owner subtypes
    "OwnerKind",
    "FarmProfile",
    "SlaughterhouseProfile",
    "ProcessorProfile",
    "RetailerProfile",
    # Codec
    "ENTITY_TYPES",
    "encode",
    "decode",
    "decode_as",
]
