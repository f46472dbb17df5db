"""
Apply module for the Cow Ledger - transaction execution.

This module handles:
- Dispatch of named transactions (Ledger, Response)
- Buffered, atomic transaction contexts
- Transaction handlers (registration, remarks, transfer, deletion)
- Read path for point lookups and typed listings

Every write goes through a TransactionContext and reaches the store
as a single write_batch() at commit.

Invariants:
    - A rejected transaction writes nothing
    - Handlers validate arity before any read
    - Listings close their store scan on every exit path

How to change safely:
    - Register new transactions in LedgerHandlers.table()
    - Remark-only transactions are data in remarks.REMARK_TRANSACTIONS
"""

from .context import TransactionContext
from .dispatch import Ledger, Response
from .handlers import LISTING_FUNCTIONS, LedgerHandlers
from .query import QueryEngine
from .remarks import REMARK_TRANSACTIONS, RemarkTransaction, append_remarks
from .seed import seed_records

__all__ = [
    "Ledger",
    "Response",
    "TransactionContext",
    "LedgerHandlers",
    "LISTING_FUNCTIONS",
    "QueryEngine",
    "RemarkTransaction",
    "REMARK_TRANSACTIONS",
    "append_remarks",
    "seed_records",
]
