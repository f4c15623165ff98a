"""
Up use case — install, prepare, launch, supervise.

Flow:
    load config → ensure dependencies → generate spec → purge → launch → park → shutdown

Each phase runs to completion before the next starts.  The first
fatal error ends the run and is reported in ``UpResult.error``
together with the phase it happened in.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from carp.adapters.base import CommandRunner
from carp.adapters.shell.command import ShellCommandRunner
from carp.core.config.loader import ConfigError, find_config_file, load_config, stack_root
from carp.core.errors import CarpError
from carp.core.models.process import ShutdownReport
from carp.core.models.stack import StackConfig
from carp.core.services.chain import GENERATE_STEP, PURGE_STEP, prepare_chain
from carp.core.services.installer import InstallReport, ensure_installed
from carp.core.services.supervisor import ProcessSupervisor

logger = logging.getLogger(__name__)

# Phase names, in the order they occur.
PHASE_CONFIG = "config"
PHASE_DEPENDENCIES = "dependencies"
PHASE_CHAIN_SPEC = GENERATE_STEP
PHASE_PURGE = PURGE_STEP
PHASE_LAUNCH = "launch"
PHASE_RUNNING = "running"
PHASE_SHUTDOWN = "shutdown"

# Called as on_phase(phase, payload).  The payload depends on the phase:
# a DependencyStatus per dependency, the ManagedProcess list once running,
# the received signal number at shutdown, None otherwise.
PhaseCallback = Callable[[str, Any], None]


@dataclass
class UpResult:
    """Outcome of a full ``carp up`` run."""

    config_path: Path | None = None
    stack_root: Path | None = None
    install: InstallReport | None = None
    chain_spec: Path | None = None
    shutdown: ShutdownReport | None = None
    error: str | None = None
    failed_phase: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        result: dict = {"ok": self.ok}
        if self.error:
            result["error"] = self.error
            result["failed_phase"] = self.failed_phase
        if self.install:
            result["install"] = self.install.to_dict()
        if self.chain_spec:
            result["chain_spec"] = str(self.chain_spec)
        if self.shutdown:
            result["shutdown"] = self.shutdown.to_dict()
        return result


def build_supervisor(config: StackConfig, runner: CommandRunner, root: Path) -> ProcessSupervisor:
    """Supervisor for the stack's two services."""
    return ProcessSupervisor(
        runner,
        config.services(),
        shutdown_timeout=config.supervisor.shutdown_timeout,
        poll_interval=config.supervisor.poll_interval,
        cwd=root,
    )


def run_up(
    config_path: Path | None = None,
    runner: CommandRunner | None = None,
    on_phase: PhaseCallback | None = None,
) -> UpResult:
    """Bring the stack up and supervise it until interrupted.

    Args:
        config_path: Optional explicit carp.yml.  Searched for otherwise;
            built-in defaults apply when none exists.
        runner: Process runner (default: real subprocesses).
        on_phase: Progress callback for the CLI.

    Returns:
        UpResult.  ``error`` is set if any phase failed.
    """
    result = UpResult()
    runner = runner or ShellCommandRunner()

    def phase(name: str, payload: Any = None) -> None:
        result.failed_phase = name
        logger.debug("Phase: %s", name)
        if on_phase:
            on_phase(name, payload)

    try:
        phase(PHASE_CONFIG)
        if config_path is None:
            config_path = find_config_file()
        config = load_config(config_path)
        root = stack_root(config_path)
        result.config_path = config_path
        result.stack_root = root

        phase(PHASE_DEPENDENCIES)
        result.install = ensure_installed(
            config.dependencies,
            runner,
            installer=config.binaries.installer,
            on_status=lambda status: phase(PHASE_DEPENDENCIES, status),
        )

        result.chain_spec = prepare_chain(
            runner,
            config.chain,
            builder=config.binaries.chain_spec_builder,
            node=config.binaries.node,
            cwd=root,
            on_step=phase,
        )

        phase(PHASE_LAUNCH)
        supervisor = build_supervisor(config, runner, root)
        result.shutdown = supervisor.run(
            on_running=lambda procs: phase(PHASE_RUNNING, procs),
            on_stopping=lambda signum: phase(PHASE_SHUTDOWN, signum),
        )

    except (CarpError, ConfigError) as e:
        logger.debug("Failed during %s", result.failed_phase, exc_info=True)
        result.error = str(e)
        return result

    result.failed_phase = None
    return result
