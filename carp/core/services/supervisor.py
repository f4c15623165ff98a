"""
Process supervisor — launch the long-running services and stop them together.

States:
    IDLE          → Nothing launched yet.
    LAUNCHING     → Spawning services; partial launches are rolled back.
    RUNNING       → Every service spawned; main thread parked.
    SHUTTING_DOWN → Terminating every managed process.
    STOPPED       → Terminal.  No relaunch.

Transitions:
    IDLE → LAUNCHING:          launch()
    IDLE → STOPPED:            shutdown() before anything was launched
    LAUNCHING → RUNNING:       every spawn succeeded
    LAUNCHING → STOPPED:       a spawn failed (already-started ones are stopped)
    RUNNING → SHUTTING_DOWN:   shutdown(), normally after SIGINT/SIGTERM
    SHUTTING_DOWN → STOPPED:   every process terminated or reported

The signal handler never touches the process list or the state lock.
It only raises a flag that the parked main thread polls, so a signal
arriving mid-transition cannot deadlock or double-terminate.

This is a launch-and-relay supervisor: no health checks, no restarts.
"""

from __future__ import annotations

import logging
import signal
import threading
import time
from collections.abc import Callable, Iterator, Sequence
from contextlib import ExitStack, contextmanager
from pathlib import Path
from types import FrameType

from carp.adapters.base import CommandRunner
from carp.core.errors import TerminateFailure
from carp.core.models.process import (
    ManagedProcess,
    ServiceSpec,
    ShutdownReport,
    SupervisorState,
)

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)

_FORWARD: dict[SupervisorState, set[SupervisorState]] = {
    SupervisorState.IDLE: {SupervisorState.LAUNCHING, SupervisorState.STOPPED},
    SupervisorState.LAUNCHING: {SupervisorState.RUNNING, SupervisorState.STOPPED},
    SupervisorState.RUNNING: {SupervisorState.SHUTTING_DOWN},
    SupervisorState.SHUTTING_DOWN: {SupervisorState.STOPPED},
    SupervisorState.STOPPED: set(),
}


class SupervisorStateError(RuntimeError):
    """An operation was requested in a state that does not allow it."""


class ProcessSupervisor:
    """Owns the managed service processes for the life of the program.

    Args:
        runner: Runner used to spawn the services.
        services: Services to launch, in order.
        shutdown_timeout: Seconds to wait for each process after SIGTERM
            before killing it.
        poll_interval: Seconds between shutdown-flag checks while parked.
        cwd: Working directory for the services.

    Raises:
        ValueError: ``services`` is empty.
    """

    def __init__(
        self,
        runner: CommandRunner,
        services: Sequence[ServiceSpec],
        *,
        shutdown_timeout: float = 10.0,
        poll_interval: float = 1.0,
        cwd: Path | None = None,
    ):
        self._services = list(services)
        if not self._services:
            raise ValueError("ProcessSupervisor needs at least one service")
        self._runner = runner
        self._shutdown_timeout = shutdown_timeout
        self._poll_interval = poll_interval
        self._cwd = cwd

        self._lock = threading.Lock()
        self._state = SupervisorState.IDLE
        self._processes: list[ManagedProcess] = []
        self._shutdown_requested = False
        self._received_signal: int | None = None
        self._report: ShutdownReport | None = None

    # ── Introspection ───────────────────────────────────────────

    @property
    def state(self) -> SupervisorState:
        return self._state

    @property
    def processes(self) -> list[ManagedProcess]:
        """Snapshot of the currently managed processes."""
        with self._lock:
            return list(self._processes)

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_requested

    @property
    def received_signal(self) -> int | None:
        return self._received_signal

    # ── Lifecycle ───────────────────────────────────────────────

    def launch(self) -> list[ManagedProcess]:
        """Spawn every service.

        If any spawn fails, the services already started are stopped
        before the error propagates, so nothing is left orphaned.

        Raises:
            SpawnFailure: A service could not be started.
            SupervisorStateError: Called twice.
        """
        with self._lock:
            self._transition(SupervisorState.LAUNCHING)

        launched: list[ManagedProcess] = []
        try:
            with ExitStack() as rollback:
                for service in self._services:
                    managed = self._spawn(service)
                    rollback.callback(self._rollback, managed)
                    launched.append(managed)
                rollback.pop_all()
        except BaseException:
            with self._lock:
                self._transition(SupervisorState.STOPPED)
            raise

        with self._lock:
            self._processes = launched
            self._transition(SupervisorState.RUNNING)
        return list(launched)

    def request_shutdown(self, signum: int | None = None) -> None:
        """Ask the parked main thread to shut down.

        Safe to call from a signal handler and any number of times:
        it only sets a flag.
        """
        if self._shutdown_requested:
            logger.debug("Shutdown already requested, ignoring repeat")
            return
        self._received_signal = signum
        self._shutdown_requested = True

    def wait(self) -> None:
        """Park until a shutdown is requested."""
        while not self._shutdown_requested:
            time.sleep(self._poll_interval)

    def shutdown(self) -> ShutdownReport:
        """Terminate every managed process and wait for each to exit.

        Idempotent: a second call returns the first call's report.
        A process that cannot be stopped is reported, never raised,
        and never blocks the others.
        """
        with self._lock:
            if self._state in (SupervisorState.SHUTTING_DOWN, SupervisorState.STOPPED):
                return self._report or ShutdownReport()
            if self._state is SupervisorState.IDLE:
                self._report = ShutdownReport()
                self._transition(SupervisorState.STOPPED)
                return self._report
            if self._state is SupervisorState.LAUNCHING:
                raise SupervisorStateError("cannot shut down while launching")
            self._transition(SupervisorState.SHUTTING_DOWN)
            processes, self._processes = self._processes, []

        report = ShutdownReport()
        for managed in processes:
            try:
                report.stopped[managed.role] = self._stop(managed)
            except TerminateFailure as e:
                logger.error("%s", e)
                report.failures[managed.role] = e.reason

        with self._lock:
            self._report = report
            self._transition(SupervisorState.STOPPED)
        return report

    def run(
        self,
        on_running: Callable[[list[ManagedProcess]], None] | None = None,
        on_stopping: Callable[[int | None], None] | None = None,
    ) -> ShutdownReport:
        """Launch, park until signalled, then shut down.

        ``on_running`` gets the managed processes once launched;
        ``on_stopping`` gets the received signal just before shutdown.

        Signal handlers go in before the first spawn, so an interrupt
        during launch is honoured as soon as launch completes.
        """
        with self.signal_handlers():
            self.launch()
            try:
                if on_running:
                    on_running(self.processes)
                self.wait()
                if on_stopping:
                    on_stopping(self._received_signal)
            finally:
                report = self.shutdown()
        return report

    # ── Signals ─────────────────────────────────────────────────

    def _handle_signal(self, signum: int, frame: FrameType | None) -> None:
        logger.info("Received %s", signal.Signals(signum).name)
        self.request_shutdown(signum)

    @contextmanager
    def signal_handlers(self) -> Iterator[None]:
        """Route SIGINT/SIGTERM to ``request_shutdown`` for the block."""
        previous = {sig: signal.signal(sig, self._handle_signal) for sig in HANDLED_SIGNALS}
        try:
            yield
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

    # ── Internals ───────────────────────────────────────────────

    def _spawn(self, service: ServiceSpec) -> ManagedProcess:
        logger.info("Starting %s: %s %s", service.role, service.executable, " ".join(service.args))
        handle = self._runner.spawn(service.executable, service.args, cwd=self._cwd)
        logger.info("%s started with PID %d", service.role, handle.pid)
        return ManagedProcess(role=service.role, handle=handle)

    def _rollback(self, managed: ManagedProcess) -> None:
        logger.warning("Launch failed, stopping %s (PID %d)", managed.role, managed.pid)
        try:
            self._stop(managed)
        except TerminateFailure as e:
            logger.error("%s", e)

    def _stop(self, managed: ManagedProcess) -> int | None:
        """SIGTERM, wait, then SIGKILL if the process will not exit."""
        handle = managed.handle
        if handle.poll() is not None:
            logger.debug("%s already exited (%s)", managed.role, handle.returncode)
            return handle.returncode

        logger.debug("Sending SIGTERM to %s (PID %d)", managed.role, managed.pid)
        try:
            handle.terminate()
        except OSError as e:
            raise TerminateFailure(managed.role, f"could not signal PID {managed.pid}: {e}") from e

        code = handle.wait(timeout=self._shutdown_timeout)
        if code is not None:
            logger.info("%s stopped (exit %s)", managed.role, code)
            return code

        logger.warning(
            "%s did not exit within %.1fs, killing PID %d",
            managed.role,
            self._shutdown_timeout,
            managed.pid,
        )
        try:
            handle.kill()
        except OSError as e:
            raise TerminateFailure(managed.role, f"could not kill PID {managed.pid}: {e}") from e
        handle.wait(timeout=self._shutdown_timeout)
        raise TerminateFailure(
            managed.role,
            f"did not exit within {self._shutdown_timeout:.1f}s of SIGTERM; killed",
        )

    def _transition(self, new_state: SupervisorState) -> None:
        """Move forward to ``new_state``.  Caller holds the lock."""
        if new_state not in _FORWARD[self._state]:
            raise SupervisorStateError(f"cannot go from {self._state} to {new_state}")
        logger.debug("Supervisor: %s → %s", self._state, new_state)
        self._state = new_state
