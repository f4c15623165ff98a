"""
Error taxonomy — every fatal condition carp can surface.

Services raise these; use cases catch ``CarpError`` and turn it into
a result object the CLI renders.  Nothing here is retried.
"""

from __future__ import annotations


class CarpError(Exception):
    """Base class for all carp failures."""


class SpawnFailure(CarpError):
    """The executable is missing or the OS refused to start it."""

    def __init__(self, executable: str, reason: str):
        self.executable = executable
        self.reason = reason
        super().__init__(f"Could not start '{executable}': {reason}")


class InstallFailure(CarpError):
    """Installing a required dependency failed."""

    def __init__(self, dependency: str, reason: str):
        self.dependency = dependency
        self.reason = reason
        super().__init__(f"Failed to install '{dependency}': {reason}")


class PrepareFailure(CarpError):
    """Chain-spec generation or chain purge failed."""

    def __init__(self, step: str, reason: str):
        self.step = step
        self.reason = reason
        super().__init__(f"Chain preparation failed at '{step}': {reason}")


class TerminateFailure(CarpError):
    """A managed process could not be signalled or did not confirm exit."""

    def __init__(self, role: str, reason: str):
        self.role = role
        self.reason = reason
        super().__init__(f"Failed to stop {role}: {reason}")
