"""
Check use case — report which stack binaries are installed.

Read-only: probes every dependency and never installs anything.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from carp.adapters.base import CommandRunner
from carp.adapters.shell.command import ShellCommandRunner
from carp.core.config.loader import ConfigError, find_config_file, load_config
from carp.core.services.installer import InstallReport, check_dependencies


@dataclass
class CheckResult:
    """Presence of each required binary."""

    config_path: Path | None = None
    report: InstallReport | None = None
    error: str | None = None

    @property
    def all_present(self) -> bool:
        return self.report is not None and not self.report.missing

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        assert self.report is not None
        return {
            "config_path": str(self.config_path) if self.config_path else None,
            "all_present": self.all_present,
            **self.report.to_dict(),
        }


def check_stack(
    config_path: Path | None = None,
    runner: CommandRunner | None = None,
) -> CheckResult:
    """Probe every configured dependency.

    Args:
        config_path: Optional explicit carp.yml.
        runner: Process runner (default: real subprocesses).
    """
    result = CheckResult()
    try:
        if config_path is None:
            config_path = find_config_file()
        config = load_config(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    result.config_path = config_path
    result.report = check_dependencies(config.dependencies, runner or ShellCommandRunner())
    return result
