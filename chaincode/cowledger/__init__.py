"""
Cow Ledger - livestock supply-chain traceability ledger.

This package implements a ledger of typed records stored in a sorted
key-value store:
- Cows, Owners (farm, slaughterhouse, processor, retailer), HACCP
  certifications, RFID tag attachments and processing bundles
- An append-only Remark trail layered over each Cow and Owner record
- A fixed set of domain transactions dispatched by function name
- Point lookup and key-range listing over a prefix-based key schema

Architecture:
    ┌─────────────┐     ┌─────────────┐     ┌─────────────────┐
    │ Client/CLI  │────▶│  HTTP API   │────▶│  Dispatch table │
    └─────────────┘     └─────────────┘     └────────┬────────┘
                                                     │
                                                     ▼
                        ┌─────────────────────────────────────────┐
                        │  Transaction handlers / Query engine     │
                        │  (TransactionContext: buffered writes)   │
                        └────────────────────┬────────────────────┘
                                             │
                                             ▼
                        ┌─────────────────────────────────────────┐
                        │  KeyValueStore (memory | SQLite)        │
                        └─────────────────────────────────────────┘

Invariants:
    - Every record is a standalone value; cross-record links are caller discipline
    - Remarks are append-only and never deduplicated by key
    - A Cow's embedded Owner is a snapshot, replaced wholesale on transfer
    - Listing relies on keys of a type sorting inside <PREFIX>0..<PREFIX>999999

How to change safely:
    - Persisted field names are a wire contract; add fields, never rename
    - New transactions are a descriptor in apply/remarks.py plus a dispatch entry
    - Keep type prefixes mutually non-overlapping
"""

from ._version import __version__

__all__ = ["__version__"]
