"""
Command-line tool for the Cow Ledger.

Runs transactions directly against the configured store, without the
HTTP server:
- invoke: Run any transaction by name
- list: Print every listable record of a type
- seed: Write the sample owners and cows

Usage:
    cowledger invoke registerOwner OWNER9 FARM9 Farm Iksan C Kim 530118
    cowledger invoke query COW COW0
    cowledger list COW
    cowledger seed

The store is selected by the same environment variables as the server
(LEDGER_STORE, DATA_DIR, ...). See config.py.

Invariants:
    - A rejected transaction exits non-zero and prints the error to stderr
    - Output on stdout is JSON only, suitable for piping to jq
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Sequence

from ..apply import LISTING_FUNCTIONS, Ledger, Response
from ..config import LedgerConfig, StoreBackend
from ..schema.keys import KeyType
from ..store import KeyValueStore, create_store

logger = logging.getLogger(__name__)


class LedgerCLI:
    """CLI operations over a ledger.

    Example:
        >>> cli = LedgerCLI(InMemoryKeyValueStore())
        >>> cli.seed().success
        True
        >>> cli.list("COW").payload
        b'[{"Key":"COW0",...}]'
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store
        self.ledger = Ledger(store)

    def invoke(self, function: str, args: Sequence[str]) -> Response:
        """Run a transaction by name."""
        return self.ledger.invoke(function, args)

    def list(self, type_token: str) -> Response:
        """List every record of a type.

        Raises:
            ValidationError: If the type token is not recognized
        """
        key_type = KeyType.from_token(type_token)
        return self.ledger.invoke(LISTING_FUNCTIONS[key_type], [])

    def seed(self) -> Response:
        """Write the sample records."""
        return self.ledger.invoke("initLedger", [])


def render(response: Response) -> tuple[str, int]:
    """Text to print and the exit code for a response."""
    if response.success:
        return json.dumps(response.to_dict().get("payload"), indent=2, ensure_ascii=False), 0
    return f"Error [{response.error_code}]: {response.error}", 1


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point for the ledger tool."""
    parser = argparse.ArgumentParser(description="Cow Ledger command-line tool")
    parser.add_argument(
        "--log-level", default="WARNING", help="Logging level (default: WARNING)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # invoke command
    invoke_parser = subparsers.add_parser("invoke", help="Run a transaction by name")
    invoke_parser.add_argument("function", help="Transaction name, e.g. registerCow")
    invoke_parser.add_argument("args", nargs="*", help="Positional string arguments")

    # list command
    list_parser = subparsers.add_parser("list", help="List every record of a type")
    list_parser.add_argument("type", choices=[k.value for k in KeyType], help="Record type")

    # seed command
    subparsers.add_parser("seed", help="Write the sample owners and cows")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = LedgerConfig.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    if config.storage.backend == StoreBackend.MEMORY:
        logger.warning("Using the in-memory store; nothing will persist after exit")

    store = create_store(config.storage)
    cli = LedgerCLI(store)
    try:
        if args.command == "invoke":
            response = cli.invoke(args.function, args.args)
        elif args.command == "list":
            response = cli.list(args.type)
        else:
            response = cli.seed()
    finally:
        store.close()

    text, code = render(response)
    if code == 0:
        if response.payload is not None:
            print(text)
    else:
        print(text, file=sys.stderr)
    sys.exit(code)


if __name__ == "__main__":
    main()
