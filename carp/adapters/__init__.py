"""Adapters — how carp starts external programs.

Public re-exports for convenient access.
"""

from carp.adapters.base import CommandRunner, ProcessHandle
from carp.adapters.mock import FakeProcess, MockRunner
from carp.adapters.shell.command import ShellCommandRunner

__all__ = [
    "CommandRunner",
    "FakeProcess",
    "MockRunner",
    "ProcessHandle",
    "ShellCommandRunner",
]
