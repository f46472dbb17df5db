"""
Tools module for the Cow Ledger.

Contains CLI tools for:
- Running transactions against the configured store
- Listing records by type
- Seeding sample data
"""

from .ledger_cli import LedgerCLI

__all__ = ["LedgerCLI"]
