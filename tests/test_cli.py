"""
Tests for CLI commands — up, check, and global options.
"""

import json
import os
import signal
import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

from carp.adapters.mock import MockRunner
from carp.main import cli

from conftest import ETH_RPC, NODE


@pytest.fixture
def config_file(stack_dir: Path) -> Path:
    path = stack_dir / "carp.yml"
    path.write_text(textwrap.dedent("""\
        supervisor:
          shutdown_timeout: 2.0
          poll_interval: 0.05
    """))
    return path


def _interrupt_on_launch(runner: MockRunner) -> None:
    """Deliver SIGINT as soon as the last service has been spawned."""

    def interrupt(call):
        if not call.quiet:
            os.kill(os.getpid(), signal.SIGINT)

    runner.add_effect(ETH_RPC, interrupt)


class TestCLIGlobal:
    """Tests for global CLI behavior."""

    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "carp" in result.output
        assert "check" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_no_subcommand_runs_up(self, stack_runner: MockRunner, config_file: Path):
        stack_runner.set_exit_code(NODE, 1, subcommand="purge-chain")
        result = CliRunner().invoke(cli, ["--config", str(config_file)], obj={"runner": stack_runner})
        assert result.exit_code == 1
        assert "Generating chain spec" in result.output
        assert "Purging previous chain data" in result.output


class TestUpCommand:
    def test_full_run(self, stack_runner: MockRunner, config_file: Path):
        _interrupt_on_launch(stack_runner)
        result = CliRunner().invoke(
            cli, ["--config", str(config_file), "up"], obj={"runner": stack_runner}
        )
        assert result.exit_code == 0, result.output
        assert "Checking dependencies" in result.output
        assert "OMNINODE IS STARTING" in result.output
        assert "SIGINT received, stopping services" in result.output
        assert "omni-node stopped" in result.output
        assert "Carp finished" in result.output

    def test_quiet_hides_banner(self, stack_runner: MockRunner, config_file: Path):
        _interrupt_on_launch(stack_runner)
        result = CliRunner().invoke(
            cli, ["-q", "--config", str(config_file), "up"], obj={"runner": stack_runner}
        )
        assert result.exit_code == 0
        assert "OMNINODE IS STARTING" not in result.output
        assert "Press Ctrl-C to stop." in result.output

    def test_reports_install(self, stack_runner: MockRunner, config_file: Path):
        _interrupt_on_launch(stack_runner)
        stack_runner.missing.add(NODE)
        stack_runner.add_effect("cargo", lambda call: stack_runner.missing.discard(NODE))
        result = CliRunner().invoke(
            cli, ["--config", str(config_file), "up"], obj={"runner": stack_runner}
        )
        assert result.exit_code == 0
        assert "polkadot-omni-node installed" in result.output

    def test_failure_exits_nonzero(self, stack_runner: MockRunner, config_file: Path):
        stack_runner.set_exit_code(NODE, 3, subcommand="purge-chain")
        result = CliRunner().invoke(
            cli, ["--config", str(config_file), "up"], obj={"runner": stack_runner}
        )
        assert result.exit_code == 1
        assert "exited with code 3" in result.output
        assert stack_runner.calls_to(ETH_RPC) == []

    def test_failure_json(self, stack_runner: MockRunner, config_file: Path):
        stack_runner.set_exit_code(NODE, 3, subcommand="purge-chain")
        result = CliRunner().invoke(
            cli, ["--config", str(config_file), "up", "--json"], obj={"runner": stack_runner}
        )
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["ok"] is False
        assert data["failed_phase"] == "purge-chain"


class TestCheckCommand:
    def test_all_present(self, runner: MockRunner, config_file: Path):
        result = CliRunner().invoke(
            cli, ["--config", str(config_file), "check"], obj={"runner": runner}
        )
        assert result.exit_code == 0
        assert "✓ polkadot-omni-node" in result.output
        assert "✓ eth-rpc" in result.output

    def test_missing(self, config_file: Path):
        runner = MockRunner(missing=[ETH_RPC])
        result = CliRunner().invoke(
            cli, ["--config", str(config_file), "check"], obj={"runner": runner}
        )
        assert result.exit_code == 1
        assert "installs as pallet-revive-eth-rpc" in result.output
        assert runner.calls_to("cargo", include_probes=True) == []

    def test_json(self, config_file: Path):
        runner = MockRunner(missing=[ETH_RPC])
        result = CliRunner().invoke(
            cli, ["--config", str(config_file), "check", "--json"], obj={"runner": runner}
        )
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["all_present"] is False
        assert data["missing"] == [ETH_RPC]

    def test_bad_config(self, tmp_path: Path):
        bad = tmp_path / "carp.yml"
        bad.write_text("- not\n- a mapping\n")
        result = CliRunner().invoke(cli, ["--config", str(bad), "check"], obj={"runner": MockRunner()})
        assert result.exit_code == 1
        assert "Expected a YAML mapping" in result.output
