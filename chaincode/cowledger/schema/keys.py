"""
Key schema for ledger records.

Keys are plain strings of the form <TYPE_PREFIX><discriminator>, e.g.
"COW12", "OWNER3", "HACCP0". The discriminator is chosen by the caller.

Listing a type is a range scan between <PREFIX>0 and <PREFIX>999999
under byte order, so a key is only listed when its discriminator starts
with a digit and sorts below "999999". Keys outside that window can be
stored and fetched but never appear in a listing.

Invariants:
    - Type prefixes are mutually non-overlapping
    - Type tokens are matched exactly and case-sensitively
    - Listing order is byte order ("COW10" before "COW2"), never numeric

How to change safely:
    - Never rename a prefix; stored keys depend on it
    - A new type needs a prefix that is not a prefix of any other
"""

from __future__ import annotations

from enum import Enum

from ..errors import ValidationError

SCAN_LOW = "0"
SCAN_HIGH = "999999"


class KeyType(Enum):
    """Record types and their key prefixes."""

    COW = "COW"
    OWNER = "OWNER"
    HACCP = "HACCP"
    RFID = "RFID"
    BUNDLE = "BUNDLE"

    @property
    def prefix(self) -> str:
        return self.value

    @classmethod
    def from_token(cls, token: str) -> KeyType:
        """Resolve a type token such as "COW".

        Args:
            token: Type token supplied by the caller

        Returns:
            Matching KeyType

        Raises:
            ValidationError: If the token names no record type
        """
        for key_type in cls:
            if key_type.value == token:
                return key_type
        valid = [k.value for k in cls]
        raise ValidationError(f"Unrecognized record type '{token}'. Valid types: {valid}")

    @classmethod
    def of_key(cls, key: str) -> KeyType | None:
        """Infer the type of a storage key from its prefix, if any."""
        for key_type in cls:
            if key.startswith(key_type.value):
                return key_type
        return None

    def scan_bounds(self) -> tuple[str, str]:
        """Half-open scan window used to list every record of this type."""
        return self.value + SCAN_LOW, self.value + SCAN_HIGH

    def in_scan_range(self, key: str) -> bool:
        """Whether a listing of this type will include the key."""
        start, end = self.scan_bounds()
        return start <= key < end

    def make_key(self, discriminator: str) -> str:
        """Build a storage key from a discriminator."""
        return self.value + discriminator

    def seed_key(self, n: int) -> str:
        """Key derived from a zero-based counter, as used when seeding."""
        if n < 0:
            raise ValueError(f"Counter must be non-negative, got {n}")
        return self.make_key(str(n))
