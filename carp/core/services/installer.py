"""
Dependency installer — make sure every required binary is on PATH.

For each dependency, in order:
    probe → (absent) build install command → run it → next

Installs run one at a time and to completion: cargo builds share a
target/registry cache and must not race.  A failed install is fatal;
nothing downstream can work without the binary.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from carp.adapters.base import CommandRunner
from carp.core.errors import InstallFailure, SpawnFailure
from carp.core.models.dependency import Dependency, DependencyStatus

logger = logging.getLogger(__name__)

# Called with each DependencyStatus as soon as it is known.
StatusCallback = Callable[[DependencyStatus], None]


@dataclass
class InstallReport:
    """Per-dependency outcome of ``ensure_installed``."""

    statuses: list[DependencyStatus] = field(default_factory=list)

    @property
    def installed(self) -> list[str]:
        return [s.bin for s in self.statuses if s.installed]

    @property
    def missing(self) -> list[str]:
        return [s.bin for s in self.statuses if not s.present]

    def to_dict(self) -> dict:
        return {
            "dependencies": [s.model_dump() for s in self.statuses],
            "installed": self.installed,
            "missing": self.missing,
        }


def install_args(dep: Dependency) -> list[str]:
    """Arguments for ``cargo`` that install ``dep``.

    Without a source the crate comes from the default registry;
    with one it is built from git, pinned by ``--tag`` or ``--rev``.
    """
    if dep.source is None:
        return ["install", dep.install_name]

    return [
        "install",
        "--git",
        dep.source.url,
        dep.source.kind.pin_flag,
        dep.source.ref,
        dep.install_name,
    ]


def install_dependency(
    dep: Dependency,
    runner: CommandRunner,
    installer: str = "cargo",
) -> None:
    """Install one dependency and wait for the installer to finish.

    Raises:
        InstallFailure: The installer could not start or exited non-zero.
    """
    args = install_args(dep)
    logger.info("Installing %s: %s %s", dep.bin, installer, " ".join(args))

    try:
        code = runner.run(installer, args)
    except SpawnFailure as e:
        raise InstallFailure(dep.install_name, str(e)) from e

    if code != 0:
        raise InstallFailure(dep.install_name, f"{installer} exited with code {code}")

    logger.info("Installed %s", dep.install_name)


def check_dependencies(
    dependencies: Sequence[Dependency],
    runner: CommandRunner,
) -> InstallReport:
    """Probe every dependency without installing anything."""
    report = InstallReport()
    for dep in dependencies:
        present = runner.probe(dep.bin)
        logger.debug("%s present: %s", dep.bin, present)
        report.statuses.append(
            DependencyStatus(bin=dep.bin, install_name=dep.install_name, present=present)
        )
    return report


def ensure_installed(
    dependencies: Sequence[Dependency],
    runner: CommandRunner,
    installer: str = "cargo",
    on_status: StatusCallback | None = None,
) -> InstallReport:
    """Probe each dependency and install the absent ones, in list order.

    Idempotent: when everything is already present only the probes run.

    Args:
        dependencies: Required binaries, in install order.
        runner: Runner used for probes and installs.
        installer: Installer executable (``cargo``).
        on_status: Optional callback fired per dependency.

    Returns:
        InstallReport with one status per dependency.

    Raises:
        InstallFailure: On the first dependency that fails to install.
    """
    report = InstallReport()

    for dep in dependencies:
        status = DependencyStatus(bin=dep.bin, install_name=dep.install_name)

        if runner.probe(dep.bin):
            status.present = True
        else:
            logger.warning("%s not found, installing %s", dep.bin, dep.install_name)
            install_dependency(dep, runner, installer)
            status.present = True
            status.installed = True

        report.statuses.append(status)
        if on_status is not None:
            on_status(status)

    return report
