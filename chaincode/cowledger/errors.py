"""
Error types for the Cow Ledger.

This module defines the exceptions raised by transaction handlers:
- LedgerError: Base exception
- ValidationError: Wrong argument count or unrecognized token
- NotFoundError: Referenced key is absent
- CorruptRecordError: Stored bytes do not decode into the expected entity

Store failures are reported with StoreError (see store/base.py), which is
deliberately outside this hierarchy so the dispatcher never turns it into
a failure response.

Invariants:
    - All ledger errors inherit from LedgerError
    - Every error is terminal; nothing here is retried
    - Error messages name the offending key or argument count
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class LedgerError(Exception):
    """Base exception for all ledger errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "LEDGER_ERROR"
        self.details = details or {}


class ValidationError(LedgerError):
    """Transaction input is malformed.

    Raised when:
    - Argument count does not match the transaction
    - Type token or owner discriminator is not recognized
    - Function name is unknown
    """

    def __init__(
        self,
        message: str,
        expected: Optional[int] = None,
        actual: Optional[int] = None,
    ) -> None:
        super().__init__(
            message,
            code="VALIDATION_ERROR",
            details={"expected": expected, "actual": actual},
        )
        self.expected = expected
        self.actual = actual

    @classmethod
    def arity(cls, function: str, expected: int, actual: int) -> ValidationError:
        """Build the error for a wrong number of arguments."""
        return cls(
            f"Incorrect number of arguments for {function}. Expecting {expected}, got {actual}",
            expected=expected,
            actual=actual,
        )


class NotFoundError(LedgerError):
    """Referenced key does not exist.

    Raised when:
    - Owner is missing during Cow registration
    - Target Cow or Owner of an append transaction is missing
    - Cow to delete or query is missing
    """

    def __init__(self, message: str, key: str, entity: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="NOT_FOUND",
            details={"key": key, "entity": entity},
        )
        self.key = key
        self.entity = entity


class CorruptRecordError(LedgerError):
    """Stored bytes failed to decode into the expected entity shape."""

    def __init__(self, message: str, key: str, entity: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="CORRUPT_RECORD",
            details={"key": key, "entity": entity},
        )
        self.key = key
        self.entity = entity
