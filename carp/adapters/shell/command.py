"""
Shell command runner — the real CommandRunner, backed by subprocess.Popen.

This is the SINGLE PLACE where carp creates OS processes.  Children
inherit the terminal's stdin/stdout/stderr (and process group) unless
a probe asks for silence.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path

from carp.adapters.base import CommandRunner, ProcessHandle
from carp.core.errors import SpawnFailure

logger = logging.getLogger(__name__)


class PopenHandle(ProcessHandle):
    """ProcessHandle over a ``subprocess.Popen``."""

    def __init__(self, proc: subprocess.Popen):
        self._proc = proc

    @property
    def pid(self) -> int:
        return self._proc.pid

    @property
    def returncode(self) -> int | None:
        return self._proc.returncode

    def poll(self) -> int | None:
        return self._proc.poll()

    def wait(self, timeout: float | None = None) -> int | None:
        try:
            return self._proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None

    def terminate(self) -> None:
        # Popen.send_signal already skips processes that have been reaped;
        # the extra poll catches ones that exited but were not reaped yet.
        if self._proc.poll() is not None:
            return
        try:
            self._proc.terminate()
        except ProcessLookupError:
            pass

    def kill(self) -> None:
        if self._proc.poll() is not None:
            return
        try:
            self._proc.kill()
        except ProcessLookupError:
            pass


class ShellCommandRunner(CommandRunner):
    """Start real processes.

    No shell is involved: ``executable`` and ``args`` go to ``execvp``
    as a list, so nothing is re-split or interpolated.
    """

    def spawn(
        self,
        executable: str,
        args: Sequence[str] = (),
        *,
        quiet: bool = False,
        cwd: Path | None = None,
    ) -> ProcessHandle:
        cmd = [executable, *args]
        logger.debug("Spawning: %s (cwd=%s)", " ".join(cmd), cwd or ".")

        stream = subprocess.DEVNULL if quiet else None
        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL if quiet else None,
                stdout=stream,
                stderr=stream,
                cwd=str(cwd) if cwd else None,
            )
        except FileNotFoundError as e:
            raise SpawnFailure(executable, "executable not found") from e
        except OSError as e:
            raise SpawnFailure(executable, e.strerror or str(e)) from e

        logger.debug("%s started with PID %d", executable, proc.pid)
        return PopenHandle(proc)
