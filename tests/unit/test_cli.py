"""
Tests for the mintguard command line interface.
"""

import json
import os

import pytest
from click.testing import CliRunner

from accounts.token import ExtensionType
from cli.main import CLIContext, cli
from network.rpc import RPCConnection
from validator.core import ConfigurationError


@pytest.fixture
def runner(monkeypatch, tmp_path):
    """CLI runner isolated from config files and MINTGUARD_ variables."""
    monkeypatch.setattr("cli.config.CONFIG_SEARCH_PATHS", [tmp_path / ".mintguard.yml"])
    for name in list(os.environ):
        if name.startswith("MINTGUARD_"):
            monkeypatch.delenv(name)
    return CliRunner()


@pytest.fixture
def fake_rpc(monkeypatch, connection_factory, populated_source):
    """Route RPC connections built by the CLI to an in-memory source."""
    connection_factory.source = populated_source["source"]
    built_with = []

    def factory(config):
        built_with.append(config)
        return connection_factory

    monkeypatch.setattr(RPCConnection, "factory", staticmethod(factory))
    return {"configs": built_with, "factory": connection_factory, **populated_source}


def invoke(runner, args):
    return runner.invoke(cli, args, obj=CLIContext())


class TestCheckCommand:
    """Test the check command."""

    def test_clean_mint_exits_zero(self, runner, fake_rpc):
        result = invoke(runner, ["check", str(fake_rpc["clean"])])

        assert result.exit_code == 0
        assert "PASS" in result.stdout
        assert "batch accepted" in result.stdout

    def test_unsafe_mint_exits_one(self, runner, fake_rpc):
        result = invoke(runner, ["-o", "json", "check", str(fake_rpc["clean"]), str(fake_rpc["unsafe"])])

        assert result.exit_code == 1
        report = json.loads(result.stdout)
        assert report["total"] == 2
        assert report["failed"] == 1
        assert report["overallSuccess"] is False
        assert report["items"][1]["identifier"] == str(fake_rpc["unsafe"])

    def test_threshold_option(self, runner, fake_rpc):
        result = invoke(runner, ["check", str(fake_rpc["unsafe"]), "--threshold", "1"])

        assert result.exit_code == 0

    def test_fast_option(self, runner, fake_rpc, address_factory, mint_factory):
        hooked = address_factory(7)
        fake_rpc["source"].add(hooked, mint_factory(extensions=[ExtensionType.TransferHook]))

        assert invoke(runner, ["check", str(hooked)]).exit_code == 1

        result = invoke(runner, ["-o", "json", "check", str(hooked), "--fast"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["passed"] == 1

    def test_endpoint_option(self, runner, fake_rpc):
        result = invoke(runner, ["check", str(fake_rpc["clean"]), "--endpoint", "http://localhost:8899"])

        assert result.exit_code == 0
        assert fake_rpc["configs"][0].endpoint == "http://localhost:8899"

    def test_invalid_endpoint(self, runner, fake_rpc):
        result = invoke(runner, ["check", str(fake_rpc["clean"]), "--endpoint", "localhost"])

        assert result.exit_code == 2

    def test_invalid_mint_reported_as_failure(self, runner, fake_rpc):
        result = invoke(runner, ["-o", "json", "check", "not-a-mint"])

        assert result.exit_code == 1
        assert json.loads(result.stdout)["items"][0]["identifier"] == "not-a-mint"

    def test_invalid_filter_configuration(self, runner, fake_rpc, monkeypatch):
        monkeypatch.setenv("MINTGUARD_FILTERS__MIN_BASIS_POINTS", "900")
        monkeypatch.setenv("MINTGUARD_FILTERS__MAX_BASIS_POINTS", "100")

        result = invoke(runner, ["check", str(fake_rpc["clean"])])

        assert result.exit_code == 1
        assert not isinstance(result.exception, ConfigurationError)
        assert "Invalid filter configuration" in result.output
        assert fake_rpc["factory"].connections == []

    def test_requires_mints(self, runner):
        assert invoke(runner, ["check"]).exit_code == 2


class TestConfigCommands:
    """Test the config command group."""

    def test_show_key(self, runner):
        result = invoke(runner, ["config", "show", "--key", "filters.concurrency"])

        assert result.exit_code == 0
        assert result.stdout.strip() == "50"

    def test_show_all(self, runner):
        result = invoke(runner, ["-p", "fast", "config", "show"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["filters"]["fast_mode"] is True

    def test_validate(self, runner):
        result = invoke(runner, ["config", "validate"])

        assert result.exit_code == 0
        assert "Configuration is valid." in result.stdout

    def test_validate_reports_errors(self, runner, monkeypatch):
        monkeypatch.setenv("MINTGUARD_FILTERS__CONCURRENCY", "0")

        result = invoke(runner, ["config", "validate"])

        assert result.exit_code == 1

    def test_env(self, runner):
        result = invoke(runner, ["config", "env"])

        assert result.exit_code == 0
        assert "MINTGUARD_FILTERS__CHECK_FEES=true" in result.stdout.splitlines()
