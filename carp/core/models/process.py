"""
Process models — launch descriptions and live service handles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from carp.adapters.base import ProcessHandle


class SupervisorState(StrEnum):
    """Supervisor lifecycle states. Transitions only move forward."""

    IDLE = "idle"
    LAUNCHING = "launching"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


class ServiceSpec(BaseModel):
    """A long-running service the supervisor launches."""

    role: str
    executable: str
    args: list[str] = Field(default_factory=list)


@dataclass
class ManagedProcess:
    """A launched service, owned by the supervisor until it is stopped."""

    role: str
    handle: ProcessHandle

    @property
    def pid(self) -> int:
        return self.handle.pid


@dataclass
class ShutdownReport:
    """What happened to each managed process during shutdown."""

    stopped: dict[str, int | None] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def clean(self) -> bool:
        return not self.failures

    def to_dict(self) -> dict:
        return {
            "clean": self.clean,
            "stopped": self.stopped,
            "failures": self.failures,
        }
