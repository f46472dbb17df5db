"""
Unit tests for the key schema.

Tests cover:
- Type token resolution
- Scan window bounds and membership
- Seed key derivation
"""

import pytest

from chaincode.cowledger.errors import ValidationError
from chaincode.cowledger.schema.keys import KeyType


class TestKeyType:
    """Tests for KeyType."""

    def test_from_token_exact(self):
        """Every prefix resolves to its own type."""
        for key_type in KeyType:
            assert KeyType.from_token(key_type.prefix) is key_type

    @pytest.mark.parametrize("token", ["cow", "COWS", "", "BUND"])
    def test_from_token_rejects_unknown(self, token):
        """Tokens are matched exactly and case-sensitively."""
        with pytest.raises(ValidationError) as exc_info:
            KeyType.from_token(token)
        assert exc_info.value.code == "VALIDATION_ERROR"

    def test_scan_bounds(self):
        """Listing window is <PREFIX>0 .. <PREFIX>999999."""
        assert KeyType.COW.scan_bounds() == ("COW0", "COW999999")
        assert KeyType.BUNDLE.scan_bounds() == ("BUNDLE0", "BUNDLE999999")

    @pytest.mark.parametrize("key", ["COW0", "COW1", "COW10", "COW999998", "COW5abc"])
    def test_in_scan_range(self, key):
        """Digit-led discriminators below 999999 are listed."""
        assert KeyType.COW.in_scan_range(key)

    @pytest.mark.parametrize("key", ["COWA", "COW999999", "COW9999990", "OWNER0", "COW"])
    def test_outside_scan_range(self, key):
        """The upper bound is exclusive and letters sort above it."""
        assert not KeyType.COW.in_scan_range(key)

    def test_of_key(self):
        """Key type is inferred from the prefix."""
        assert KeyType.of_key("HACCP3") is KeyType.HACCP
        assert KeyType.of_key("RFID12") is KeyType.RFID
        assert KeyType.of_key("PIG1") is None

    def test_seed_key(self):
        """Seed keys come from a zero-based counter."""
        assert KeyType.OWNER.seed_key(0) == "OWNER0"
        assert KeyType.COW.seed_key(12) == "COW12"

    def test_seed_key_negative(self):
        """Negative counters are rejected."""
        with pytest.raises(ValueError):
            KeyType.COW.seed_key(-1)
