"""
Cow Ledger Test Suite.

This package contains:
- unit/: Unit tests (keys, codec, stores, context, query, config)
- integration/: Integration tests (transactions, HTTP API, CLI, server)
"""
