"""
Tests for the up and check use cases, driven end to end with MockRunner.
"""

import os
import signal
import textwrap
from pathlib import Path

import pytest

from carp.adapters.mock import MockRunner
from carp.core.errors import SpawnFailure
from carp.core.models import DependencyStatus
from carp.core.use_cases.check import check_stack
from carp.core.use_cases.up import (
    PHASE_CHAIN_SPEC,
    PHASE_CONFIG,
    PHASE_DEPENDENCIES,
    PHASE_LAUNCH,
    PHASE_PURGE,
    PHASE_RUNNING,
    PHASE_SHUTDOWN,
    run_up,
)

from conftest import BUILDER, ETH_RPC, NODE


@pytest.fixture
def config_file(stack_dir: Path) -> Path:
    """carp.yml with fast supervisor timings in the stack root."""
    path = stack_dir / "carp.yml"
    path.write_text(textwrap.dedent("""\
        supervisor:
          shutdown_timeout: 2.0
          poll_interval: 0.05
    """))
    return path


class PhaseRecorder:
    """on_phase callback that interrupts the run once it is up."""

    def __init__(self, interrupt: bool = True):
        self.events: list[tuple[str, object]] = []
        self.interrupt = interrupt

    def __call__(self, phase: str, payload) -> None:
        self.events.append((phase, payload))
        if phase == PHASE_RUNNING and self.interrupt:
            os.kill(os.getpid(), signal.SIGINT)

    @property
    def phases(self) -> list[str]:
        names: list[str] = []
        for phase, _ in self.events:
            if not names or names[-1] != phase:
                names.append(phase)
        return names


# ── Up ───────────────────────────────────────────────────────────────


class TestRunUp:
    def test_happy_path(self, stack_runner: MockRunner, config_file: Path, stack_dir: Path):
        recorder = PhaseRecorder()
        result = run_up(config_path=config_file, runner=stack_runner, on_phase=recorder)

        assert result.ok, result.error
        assert result.failed_phase is None
        assert result.stack_root == stack_dir.resolve()
        assert result.chain_spec == stack_dir.resolve() / "chain_spec.json"
        assert result.install.installed == []
        assert result.shutdown.clean
        assert set(result.shutdown.stopped) == {"omni-node", "eth-rpc"}

        assert recorder.phases == [
            PHASE_CONFIG,
            PHASE_DEPENDENCIES,
            PHASE_CHAIN_SPEC,
            PHASE_PURGE,
            PHASE_LAUNCH,
            PHASE_RUNNING,
            PHASE_SHUTDOWN,
        ]
        assert recorder.events[-1] == (PHASE_SHUTDOWN, signal.SIGINT)

    def test_command_order(self, stack_runner: MockRunner, config_file: Path):
        run_up(config_path=config_file, runner=stack_runner, on_phase=PhaseRecorder())

        non_probe = [c for c in stack_runner.calls if not c.quiet]
        assert [c.executable for c in non_probe] == [BUILDER, NODE, NODE, ETH_RPC]
        assert non_probe[1].args[0] == "purge-chain"
        assert non_probe[2].args[:2] == ["--chain", "./chain_spec.json"]

    def test_services_stopped_once(self, stack_runner: MockRunner, config_file: Path):
        run_up(config_path=config_file, runner=stack_runner, on_phase=PhaseRecorder())

        services = stack_runner.handles_for(NODE)[-1:] + stack_runner.handles_for(ETH_RPC)
        assert len(services) == 2
        for proc in services:
            assert proc.terminate_calls == 1

    def test_custom_spec_path(self, stack_runner: MockRunner, stack_dir: Path):
        config = stack_dir / "carp.yml"
        config.write_text(textwrap.dedent("""\
            chain:
              spec_path: ./out/my_spec.json
            supervisor:
              poll_interval: 0.05
        """))

        result = run_up(config_path=config, runner=stack_runner, on_phase=PhaseRecorder())

        assert result.ok, result.error
        assert result.chain_spec == stack_dir.resolve() / "out" / "my_spec.json"
        (builder,) = stack_runner.calls_to(BUILDER)
        assert builder.args[:2] == ["--chain-spec-path", "./out/my_spec.json"]
        (rpc,) = stack_runner.calls_to(ETH_RPC)
        assert rpc.args[:2] == ["--chain", "./out/my_spec.json"]

    def test_dependency_statuses_reported(self, stack_runner: MockRunner, config_file: Path):
        recorder = PhaseRecorder()
        run_up(config_path=config_file, runner=stack_runner, on_phase=recorder)

        statuses = [p for ph, p in recorder.events if ph == PHASE_DEPENDENCIES and p is not None]
        assert all(isinstance(s, DependencyStatus) for s in statuses)
        assert [s.bin for s in statuses] == [NODE, BUILDER, ETH_RPC]

    def test_installs_missing_binary(self, stack_runner: MockRunner, config_file: Path):
        stack_runner.missing.add(ETH_RPC)
        stack_runner.add_effect("cargo", lambda call: stack_runner.missing.discard(ETH_RPC))

        result = run_up(config_path=config_file, runner=stack_runner, on_phase=PhaseRecorder())

        assert result.ok, result.error
        assert result.install.installed == [ETH_RPC]
        (install,) = stack_runner.calls_to("cargo")
        assert "--rev" in install.args
        assert install.args[-1] == "pallet-revive-eth-rpc"

    def test_install_failure_stops_everything(self, stack_runner: MockRunner, config_file: Path):
        stack_runner.missing.add(BUILDER)
        stack_runner.set_exit_code("cargo", 101)

        result = run_up(config_path=config_file, runner=stack_runner, on_phase=PhaseRecorder())

        assert not result.ok
        assert result.failed_phase == PHASE_DEPENDENCIES
        assert "staging-chain-spec-builder" in result.error
        assert stack_runner.calls_to(ETH_RPC, include_probes=True) == []
        assert result.shutdown is None

    def test_missing_runtime(self, stack_runner: MockRunner, config_file: Path, stack_dir: Path):
        (stack_dir / "runtimes" / "westend.wasm").unlink()

        result = run_up(config_path=config_file, runner=stack_runner, on_phase=PhaseRecorder())

        assert result.failed_phase == PHASE_CHAIN_SPEC
        assert "runtime artifact not found" in result.error
        assert stack_runner.calls_to(BUILDER) == []

    def test_purge_failure_is_fatal(self, stack_runner: MockRunner, config_file: Path):
        stack_runner.set_exit_code(NODE, 1, subcommand="purge-chain")

        result = run_up(config_path=config_file, runner=stack_runner, on_phase=PhaseRecorder())

        assert result.failed_phase == PHASE_PURGE
        assert "exited with code 1" in result.error
        assert stack_runner.calls_to(ETH_RPC) == []

    def test_launch_failure_rolls_back(self, stack_runner: MockRunner, config_file: Path):
        def refuse(call):
            if not call.quiet:
                raise SpawnFailure(ETH_RPC, "Permission denied")

        stack_runner.add_effect(ETH_RPC, refuse)
        recorder = PhaseRecorder()

        result = run_up(config_path=config_file, runner=stack_runner, on_phase=recorder)

        assert result.failed_phase == PHASE_LAUNCH
        assert "Permission denied" in result.error
        node = stack_runner.handles_for(NODE)[-1]
        assert node.terminate_calls == 1
        assert PHASE_RUNNING not in recorder.phases

    def test_invalid_config(self, stack_runner: MockRunner, stack_dir: Path):
        bad = stack_dir / "carp.yml"
        bad.write_text("node:\n  block_time_ms: 0\n")

        result = run_up(config_path=bad, runner=stack_runner)

        assert result.failed_phase == PHASE_CONFIG
        assert "Invalid stack configuration" in result.error
        assert stack_runner.call_count == 0

    def test_to_dict(self, stack_runner: MockRunner, config_file: Path):
        stack_runner.set_exit_code(NODE, 1, subcommand="purge-chain")
        data = run_up(config_path=config_file, runner=stack_runner).to_dict()

        assert data["ok"] is False
        assert data["failed_phase"] == PHASE_PURGE
        assert data["chain_spec"].endswith("chain_spec.json")
        assert len(data["install"]["dependencies"]) == 3


# ── Check ────────────────────────────────────────────────────────────


class TestCheckStack:
    def test_all_present(self, runner: MockRunner, config_file: Path):
        result = check_stack(config_path=config_file, runner=runner)
        assert result.all_present
        assert all(c.quiet for c in runner.calls)

    def test_reports_missing_without_installing(self, config_file: Path):
        runner = MockRunner(missing=[ETH_RPC])
        result = check_stack(config_path=config_file, runner=runner)

        assert not result.all_present
        assert result.report.missing == [ETH_RPC]
        assert runner.calls_to("cargo", include_probes=True) == []

    def test_defaults_without_config(self, runner: MockRunner, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = check_stack(runner=runner)
        assert result.config_path is None
        assert [s.bin for s in result.report.statuses] == [NODE, BUILDER, ETH_RPC]

    def test_explicit_missing_config(self, runner: MockRunner, tmp_path: Path):
        result = check_stack(config_path=tmp_path / "nope.yml", runner=runner)
        assert "Config file not found" in result.error
        assert result.to_dict() == {"error": result.error}
