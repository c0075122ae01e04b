"""Unit tests for the CLI: Typer command registration and basic behavior.

Network-facing helpers are monkeypatched so commands run offline.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from typer.testing import CliRunner

from indexwatch.bridge.indexer_client import ConnectionCheck, TransportError
from indexwatch.cli import app as app_module
from indexwatch.cli.app import app
from indexwatch.cli.commands import health_cmd, lookup_cmd
from indexwatch.models.blocks import AddressReport, Balance, Utxo

runner = CliRunner()


class TestCliApp:
    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        # Typer's no_args_is_help may exit with 0 or 2 depending on version
        assert result.exit_code in (0, 2)
        assert "usage" in result.output.lower()

    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "watch" in result.output
        assert "lookup" in result.output
        assert "health" in result.output

    def test_watch_command_exists(self):
        result = runner.invoke(app, ["watch", "--help"])
        assert result.exit_code == 0

    def test_configure_logging_sets_level(self):
        app_module.configure_logging("debug")
        assert logging.getLogger().level == logging.DEBUG
        app_module.configure_logging("warning")
        assert logging.getLogger().level == logging.WARNING


class TestHealthCommand:
    def test_reachable(self, monkeypatch):
        async def fake_check(base_url: str) -> ConnectionCheck:
            return ConnectionCheck(success=True, response_time_ms=12)

        monkeypatch.setattr(health_cmd, "_check", fake_check)
        result = runner.invoke(app, ["health", "--url", "http://indexer.test/api"])
        assert result.exit_code == 0
        assert "OK" in result.output
        assert "12ms" in result.output

    def test_unreachable_exits_nonzero(self, monkeypatch):
        async def fake_check(base_url: str) -> ConnectionCheck:
            return ConnectionCheck(success=False, error="ConnectError: refused")

        monkeypatch.setattr(health_cmd, "_check", fake_check)
        result = runner.invoke(app, ["health"])
        assert result.exit_code == 1
        assert "UNREACHABLE" in result.output


class TestLookupCommand:
    def test_lookup_prints_report(self, monkeypatch):
        async def fake_lookup(base_url: str, address: str) -> AddressReport:
            return AddressReport(
                address=address,
                balance=Balance(available=Decimal("42"), incoming=Decimal(0), current=Decimal("42")),
                utxos=[Utxo(tx="abcd", vout=0, value=Decimal("42"))],
            )

        monkeypatch.setattr(lookup_cmd, "_lookup", fake_lookup)
        result = runner.invoke(app, ["lookup", "DAddr123"])
        assert result.exit_code == 0
        assert "DAddr123" in result.output
        assert "42" in result.output

    def test_lookup_failure(self, monkeypatch):
        async def fake_lookup(base_url: str, address: str) -> AddressReport:
            raise TransportError("ConnectError: refused")

        monkeypatch.setattr(lookup_cmd, "_lookup", fake_lookup)
        result = runner.invoke(app, ["lookup", "DAddr123"])
        assert result.exit_code == 1
        assert "Failed to fetch address data" in result.output

    def test_blank_address_rejected(self):
        result = runner.invoke(app, ["lookup", "   "])
        assert result.exit_code == 1
