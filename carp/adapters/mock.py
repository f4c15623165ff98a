"""
Mock runner — universal test double for process creation.

Records every spawn and hands back FakeProcess handles whose behaviour
is configured per executable: missing binaries, exit codes, services
that keep running until terminated, processes that ignore SIGTERM.
Nothing here touches the OS.
"""

from __future__ import annotations

import itertools
import signal
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from carp.adapters.base import CommandRunner, ProcessHandle
from carp.core.errors import SpawnFailure

_pids = itertools.count(40000)


@dataclass
class MockCall:
    """One recorded spawn."""

    executable: str
    args: list[str]
    quiet: bool = False
    cwd: Path | None = None

    @property
    def argv(self) -> list[str]:
        return [self.executable, *self.args]

    @property
    def subcommand(self) -> str | None:
        """First argument when it is a word, None for flag-led or bare calls."""
        if self.args and not self.args[0].startswith("-"):
            return self.args[0]
        return None


@dataclass
class FakeProcess(ProcessHandle):
    """In-memory ProcessHandle.

    A short-lived fake exits with ``exit_code`` as soon as it is waited
    on.  A long-running one only exits when terminated or killed.
    """

    exit_code: int = 0
    long_running: bool = False
    ignores_terminate: bool = False
    terminate_error: OSError | None = None
    terminate_calls: int = 0
    kill_calls: int = 0
    _pid: int = field(default_factory=lambda: next(_pids))
    _returncode: int | None = None

    @property
    def pid(self) -> int:
        return self._pid

    @property
    def returncode(self) -> int | None:
        return self._returncode

    def poll(self) -> int | None:
        return self._returncode

    def wait(self, timeout: float | None = None) -> int | None:
        if self._returncode is None and not self.long_running:
            self._returncode = self.exit_code
        return self._returncode

    def terminate(self) -> None:
        self.terminate_calls += 1
        if self.terminate_error is not None:
            raise self.terminate_error
        if self._returncode is None and not self.ignores_terminate:
            self._returncode = -signal.SIGTERM

    def kill(self) -> None:
        self.kill_calls += 1
        if self._returncode is None:
            self._returncode = -signal.SIGKILL


class MockRunner(CommandRunner):
    """CommandRunner that records calls instead of starting processes."""

    def __init__(self, missing: Sequence[str] = ()):
        self.missing: set[str] = set(missing)
        self.calls: list[MockCall] = []
        self.handles: list[tuple[MockCall, FakeProcess]] = []
        self._exit_codes: dict[tuple[str, str | None], int] = {}
        self._long_running: set[tuple[str, str | None]] = set()
        self._stubborn: set[tuple[str, str | None]] = set()
        self._terminate_errors: dict[str, OSError] = {}
        self._effects: dict[str, Callable[[MockCall], None]] = {}

    # ── Configuration ───────────────────────────────────────────

    def set_exit_code(self, executable: str, code: int, subcommand: str | None = None) -> None:
        """Exit status for ``executable`` (optionally only for one subcommand)."""
        self._exit_codes[(executable, subcommand)] = code

    def set_long_running(self, *executables: str, subcommand: str | None = None) -> None:
        """These executables keep running until terminated.

        Without ``subcommand`` this covers flag-led and bare invocations
        only, so ``node --chain ...`` runs forever while
        ``node purge-chain ...`` still exits straight away.
        """
        self._long_running.update((exe, subcommand) for exe in executables)

    def set_stubborn(self, executable: str, subcommand: str | None = None) -> None:
        """This executable ignores SIGTERM and only dies on kill()."""
        self._long_running.add((executable, subcommand))
        self._stubborn.add((executable, subcommand))

    def set_terminate_error(self, executable: str, error: OSError) -> None:
        """terminate() on this executable's handle raises ``error``."""
        self._terminate_errors[executable] = error

    def add_effect(self, executable: str, effect: Callable[[MockCall], None]) -> None:
        """Run ``effect`` whenever ``executable`` is spawned."""
        self._effects[executable] = effect

    # ── CommandRunner ───────────────────────────────────────────

    def spawn(
        self,
        executable: str,
        args: Sequence[str] = (),
        *,
        quiet: bool = False,
        cwd: Path | None = None,
    ) -> ProcessHandle:
        call = MockCall(executable=executable, args=list(args), quiet=quiet, cwd=cwd)
        self.calls.append(call)

        if executable in self.missing:
            raise SpawnFailure(executable, "executable not found")

        if executable in self._effects:
            self._effects[executable](call)

        key = (executable, call.subcommand)
        code = self._exit_codes.get(key, self._exit_codes.get((executable, None), 0))
        proc = FakeProcess(
            exit_code=code,
            long_running=key in self._long_running,
            ignores_terminate=key in self._stubborn,
            terminate_error=self._terminate_errors.get(executable),
        )
        self.handles.append((call, proc))
        return proc

    # ── Inspection ──────────────────────────────────────────────

    def calls_to(self, executable: str, *, include_probes: bool = False) -> list[MockCall]:
        """Recorded calls for one executable, probes excluded by default."""
        return [
            c for c in self.calls
            if c.executable == executable and (include_probes or not c.quiet)
        ]

    def handles_for(self, executable: str) -> list[FakeProcess]:
        """Handles of non-probe spawns of ``executable``."""
        return [p for c, p in self.handles if c.executable == executable and not c.quiet]

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def reset(self) -> None:
        """Clear the call log (configuration is kept)."""
        self.calls.clear()
        self.handles.clear()
