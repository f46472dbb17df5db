"""
Cow Ledger Server - Main entry point.

This module starts the ledger server:
- Key-value store (SQLite or in-memory)
- Ledger dispatcher
- HTTP API

Usage:
    python -m chaincode.cowledger.main

Configuration is entirely via environment variables.
See config.py for all available settings.

Invariants:
    - The store is open before the HTTP API accepts requests
    - Seeding, when enabled, completes before the HTTP API starts
    - The store is closed only after the HTTP API has stopped

How to change safely:
    - Add new components with enable/disable flags
    - Test shutdown sequence thoroughly
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from pathlib import Path

import json_log_formatter

from .api import run_http_server
from .apply import Ledger
from .config import LedgerConfig, StoreBackend
from .store import KeyValueStore, create_store

logger = logging.getLogger(__name__)


def setup_logging(config: LedgerConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Ledger configuration
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


class Server:
    """Cow Ledger server orchestrator.

    Attributes:
        config: Ledger configuration
        store: Key-value store instance
        ledger: Transaction dispatcher

    Example:
        >>> server = Server()
        >>> await server.start()
        >>> # Server is running
        >>> await server.stop()
    """

    def __init__(self, config: LedgerConfig | None = None) -> None:
        self.config = config or LedgerConfig.from_env()
        self._running = False
        self._shutdown_event = asyncio.Event()

        # Components (initialized in start())
        self.store: KeyValueStore | None = None
        self.ledger: Ledger | None = None

        self._tasks: list[asyncio.Task] = []

    async def start(self) -> None:
        """Start the server and block until shutdown is requested."""
        if self._running:
            logger.warning("Server already running")
            return

        logger.info("Starting Cow Ledger server")
        self.config.log_config()

        try:
            if self.config.storage.backend == StoreBackend.SQLITE:
                Path(self.config.storage.data_dir).mkdir(parents=True, exist_ok=True)

            self.store = create_store(self.config.storage)
            self.ledger = Ledger(self.store)

            if self.config.seed_on_start:
                self.seed()

            http_task = asyncio.create_task(run_http_server(self.ledger, self.config.http))
            self._tasks.append(http_task)

            self._running = True
            logger.info("Cow Ledger server started successfully")

            await self._shutdown_event.wait()

        except Exception as e:
            logger.error(f"Server startup failed: {e}", exc_info=True)
            await self.stop()
            raise

    def seed(self) -> None:
        """Write the sample records, failing startup if they are rejected."""
        assert self.ledger is not None
        response = self.ledger.invoke("initLedger", [])
        if not response.success:
            raise RuntimeError(f"Seeding failed: {response.error}")
        logger.info("Seeded sample records")

    async def stop(self) -> None:
        """Stop the server gracefully."""
        for task in self._tasks:
            task.cancel()

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

        if self.store:
            self.store.close()
            self.store = None

        if self._running:
            self._running = False
            logger.info("Cow Ledger server stopped")

    def request_shutdown(self) -> None:
        """Request graceful shutdown."""
        self._shutdown_event.set()


def main() -> None:
    """Main entry point."""
    try:
        config = LedgerConfig.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    server = Server(config)

    def handle_signal(sig: int) -> None:
        logger.info(f"Received signal {sig}, initiating shutdown")
        server.request_shutdown()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, handle_signal, sig)

    try:
        loop.run_until_complete(server.start())
    except KeyboardInterrupt:
        pass
    finally:
        loop.run_until_complete(server.stop())
        loop.close()


if __name__ == "__main__":
    main()
