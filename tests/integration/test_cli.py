"""
Integration tests for the command-line tool and server wiring.

Tests cover:
- LedgerCLI operations
- main() against a SQLite store configured through the environment
- Logging setup
- Server start/stop with seeding
"""

import asyncio
import json
import logging

import json_log_formatter
import pytest

from chaincode.cowledger.config import (
    HttpConfig,
    LedgerConfig,
    ObservabilityConfig,
    StorageConfig,
    StoreBackend,
)
from chaincode.cowledger.errors import ValidationError
from chaincode.cowledger.main import Server, setup_logging
from chaincode.cowledger.store import InMemoryKeyValueStore
from chaincode.cowledger.tools.ledger_cli import LedgerCLI, main, render

from tests.builders import owner_args


class TestLedgerCLI:
    """Tests for LedgerCLI."""

    @pytest.fixture
    def cli(self):
        return LedgerCLI(InMemoryKeyValueStore())

    def test_seed_and_list(self, cli):
        assert cli.seed().success
        listing = json.loads(cli.list("OWNER").payload)
        assert [item["Key"] for item in listing] == ["OWNER0", "OWNER1", "OWNER2"]

    def test_list_unknown_type(self, cli):
        with pytest.raises(ValidationError):
            cli.list("PIG")

    def test_invoke(self, cli):
        assert cli.invoke("registerOwner", owner_args()).success
        assert cli.invoke("query", ["OWNER", "OWNER0"]).success

    def test_render_failure(self, cli):
        text, code = render(cli.invoke("deleteCow", ["COW0"]))
        assert code == 1
        assert text.startswith("Error [NOT_FOUND]")


class TestCLIMain:
    """Tests for the cowledger entry point."""

    @pytest.fixture(autouse=True)
    def sqlite_env(self, monkeypatch, data_dir):
        """Point the CLI at a SQLite store in a temporary directory."""
        monkeypatch.setenv("LEDGER_STORE", "sqlite")
        monkeypatch.setenv("DATA_DIR", data_dir)
        monkeypatch.setenv("SQLITE_WAL_MODE", "false")

    def run(self, argv):
        with pytest.raises(SystemExit) as exc_info:
            main(argv)
        return exc_info.value.code

    def test_state_persists_between_runs(self, capsys):
        """Each run reopens the same database file."""
        assert self.run(["seed"]) == 0
        capsys.readouterr()

        assert self.run(["list", "COW"]) == 0
        listing = json.loads(capsys.readouterr().out)
        assert [item["Key"] for item in listing] == ["COW0", "COW1", "COW2"]

    def test_invoke_query(self, capsys):
        self.run(["invoke", "registerOwner", *owner_args()])
        capsys.readouterr()

        assert self.run(["invoke", "query", "OWNER", "OWNER0"]) == 0
        assert json.loads(capsys.readouterr().out)["Owner_id"] == "FARM0"

    def test_write_prints_nothing(self, capsys):
        assert self.run(["invoke", "registerOwner", *owner_args()]) == 0
        assert capsys.readouterr().out == ""

    def test_failure_exit_code(self, capsys):
        """Rejected transactions exit 1 and report on stderr."""
        assert self.run(["invoke", "deleteCow", "COW0"]) == 1
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "NOT_FOUND" in captured.err

    def test_bad_config_exit_code(self, monkeypatch, capsys):
        monkeypatch.setenv("LEDGER_STORE", "postgres")
        assert self.run(["seed"]) == 2
        assert "Configuration error" in capsys.readouterr().err


class TestServerWiring:
    """Tests for logging setup and the server orchestrator."""

    @pytest.fixture
    def root_handlers(self):
        """Restore root logger handlers after the test."""
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        yield root
        root.handlers = saved_handlers
        root.setLevel(saved_level)

    def test_json_logging(self, root_handlers):
        setup_logging(LedgerConfig(observability=ObservabilityConfig(log_level="debug")))
        assert root_handlers.level == logging.DEBUG
        assert isinstance(root_handlers.handlers[0].formatter, json_log_formatter.JSONFormatter)

    def test_text_logging(self, root_handlers):
        setup_logging(LedgerConfig(observability=ObservabilityConfig(log_format="text")))
        formatter = root_handlers.handlers[0].formatter
        assert not isinstance(formatter, json_log_formatter.JSONFormatter)

    @pytest.mark.asyncio
    async def test_start_seeds_and_stops(self, unused_tcp_port):
        """The server seeds the store, serves, and shuts down on request."""
        config = LedgerConfig(
            storage=StorageConfig(backend=StoreBackend.MEMORY),
            http=HttpConfig(bind_address=f"127.0.0.1:{unused_tcp_port}"),
            seed_on_start=True,
        )
        server = Server(config)
        task = asyncio.create_task(server.start())

        for _ in range(100):
            if server.ledger is not None and server._running:
                break
            await asyncio.sleep(0.01)

        response = server.ledger.invoke("query", ["COW", "COW0"])
        assert response.success

        server.request_shutdown()
        await task
        await server.stop()
        assert server.store is None
