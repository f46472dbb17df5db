"""
Invocation entry point for the Cow Ledger.

The Ledger routes a function name and its string arguments to a
handler, commits the handler's staged writes, and reports the outcome
as a Response. It is the only place that turns ledger errors into
failure responses.

Invariants:
    - A failed invocation leaves the store unchanged
    - LedgerError becomes a failure Response; StoreError propagates
    - Handlers never see a context from another invocation

How to change safely:
    - New transactions are registered in LedgerHandlers.table()
    - Keep Response.to_dict() stable; the HTTP API serves it as-is
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ..errors import LedgerError, ValidationError
from ..store.base import KeyValueStore
from .context import TransactionContext
from .handlers import Handler, LedgerHandlers
from .query import QueryEngine

logger = logging.getLogger(__name__)


@dataclass
class Response:
    """Outcome of one invocation.

    Attributes:
        success: Whether the transaction committed
        payload: Raw result bytes (queries only)
        error: Error message if failed
        error_code: LedgerError code if failed
        details: Error context if failed
    """

    success: bool
    payload: bytes | None = None
    error: str | None = None
    error_code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, payload: bytes | None = None) -> Response:
        return cls(success=True, payload=payload)

    @classmethod
    def failure(cls, err: LedgerError) -> Response:
        return cls(
            success=False,
            error=err.message,
            error_code=err.code,
            details=dict(err.details),
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form; JSON payloads are inlined, anything else is text."""
        if not self.success:
            return {
                "success": False,
                "error": self.error,
                "error_code": self.error_code,
                "details": self.details,
            }
        result: dict[str, Any] = {"success": True}
        if self.payload is not None:
            try:
                result["payload"] = json.loads(self.payload)
            except (UnicodeDecodeError, json.JSONDecodeError):
                result["payload"] = self.payload.decode("utf-8", errors="replace")
        return result


class Ledger:
    """Dispatches ledger transactions against a key-value store.

    Example:
        >>> ledger = Ledger(InMemoryKeyValueStore())
        >>> ledger.invoke("initLedger", [])
        Response(success=True, ...)
        >>> ledger.invoke("query", ["COW", "COW0"]).payload
        b'{"Id_no":"180501-2",...}'
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store
        self.query_engine = QueryEngine(store)
        self.handlers = LedgerHandlers(self.query_engine)
        self._table: dict[str, Handler] = self.handlers.table()

        self._invoked_count = 0
        self._error_count = 0

    @property
    def functions(self) -> list[str]:
        """Names of every supported transaction."""
        return sorted(self._table)

    def invoke(self, function: str, args: Sequence[str]) -> Response:
        """Run one transaction.

        Args:
            function: Transaction name, e.g. "registerCow"
            args: Positional string arguments

        Returns:
            Response with the query payload, or the error on failure

        Raises:
            StoreError: If the backing store fails
        """
        self._invoked_count += 1
        args = list(args)

        try:
            handler = self._table.get(function)
            if handler is None:
                raise ValidationError(f"Invalid function name: {function}")

            ctx = TransactionContext(self.store, function)
            payload = handler(ctx, args)
            ctx.commit()
            return Response.ok(payload)

        except LedgerError as e:
            self._error_count += 1
            logger.info(
                "Transaction rejected",
                extra={
                    "function": function,
                    "error_code": e.code,
                    "error": e.message,
                },
            )
            return Response.failure(e)

    @property
    def stats(self) -> dict[str, Any]:
        """Get dispatcher statistics."""
        return {
            "functions": len(self._table),
            "invoked_count": self._invoked_count,
            "error_count": self._error_count,
        }
