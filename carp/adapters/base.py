"""
Runner base — the contract between carp's services and external programs.

Services never call ``subprocess`` directly; they go through a
CommandRunner.  That keeps the install / prepare / supervise logic
testable with the in-tree MockRunner.

Unlike a receipt-style adapter, ``spawn`` raises ``SpawnFailure``:
a missing node binary is fatal for everything except presence probes,
and ``probe`` is where that case is recovered.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

from carp.core.errors import SpawnFailure

logger = logging.getLogger(__name__)

# How long a presence probe may take to die once terminated.
PROBE_REAP_TIMEOUT = 5.0


class ProcessHandle(ABC):
    """A started child process."""

    @property
    @abstractmethod
    def pid(self) -> int:
        """OS process identifier."""

    @property
    @abstractmethod
    def returncode(self) -> int | None:
        """Exit status once the process has exited, else None."""

    @abstractmethod
    def poll(self) -> int | None:
        """Non-blocking exit check."""

    @abstractmethod
    def wait(self, timeout: float | None = None) -> int | None:
        """Block until exit and return the status.

        Returns None if ``timeout`` elapses first.
        """

    @abstractmethod
    def terminate(self) -> None:
        """Send a graceful termination request (SIGTERM).

        A no-op if the process has already exited.
        """

    @abstractmethod
    def kill(self) -> None:
        """Forcefully stop the process (SIGKILL)."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} pid={self.pid}>"


class CommandRunner(ABC):
    """Starts external programs.

    Subclasses implement ``spawn``; ``run`` and ``probe`` are built on it.
    """

    @abstractmethod
    def spawn(
        self,
        executable: str,
        args: Sequence[str] = (),
        *,
        quiet: bool = False,
        cwd: Path | None = None,
    ) -> ProcessHandle:
        """Start ``executable`` without waiting for it.

        Args:
            executable: Program name (resolved on PATH) or path.
            args: Arguments after the program name.
            quiet: Discard stdout/stderr instead of inheriting them.
            cwd: Working directory for the child.

        Raises:
            SpawnFailure: The program is missing or could not be started.
        """

    def run(
        self,
        executable: str,
        args: Sequence[str] = (),
        *,
        cwd: Path | None = None,
    ) -> int:
        """Start ``executable`` and block until it exits.

        Returns:
            The exit status.

        Raises:
            SpawnFailure: The program could not be started.
            RuntimeError: The handle returned from an untimed wait
                without an exit status.
        """
        handle = self.spawn(executable, args, cwd=cwd)
        code = handle.wait()
        if code is None:
            logger.error("%s (PID %d) returned no exit status", executable, handle.pid)
            raise RuntimeError(f"{executable} (PID {handle.pid}) returned no exit status")
        logger.debug("%s exited with %s", executable, code)
        return code

    def probe(self, executable: str) -> bool:
        """Check whether ``executable`` can be started at all.

        The probe process is started with its output discarded, then
        terminated and reaped straight away.  Its exit status is
        irrelevant: a successful spawn means the binary is present.
        """
        try:
            handle = self.spawn(executable, quiet=True)
        except SpawnFailure as e:
            logger.debug("Probe for %s failed: %s", executable, e.reason)
            return False

        handle.terminate()
        if handle.wait(timeout=PROBE_REAP_TIMEOUT) is None:
            handle.kill()
            handle.wait(timeout=PROBE_REAP_TIMEOUT)
        return True

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"
