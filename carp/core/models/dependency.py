"""
Dependency models — the binaries the stack needs and where they come from.

A Dependency pairs the executable we probe for with the crate name the
installer understands.  The two are often different
(``chain-spec-builder`` ships in ``staging-chain-spec-builder``).
"""

from __future__ import annotations

import re
from enum import StrEnum

from pydantic import BaseModel, model_validator

_HEX_REV = re.compile(r"^[0-9a-fA-F]{7,40}$")


class RefKind(StrEnum):
    """How a git source is pinned."""

    TAG = "tag"
    COMMIT = "commit"

    @property
    def pin_flag(self) -> str:
        """The ``cargo install`` flag that selects this kind of ref."""
        return "--tag" if self is RefKind.TAG else "--rev"


class SourceDescriptor(BaseModel):
    """A git repository pinned to a release tag or an exact revision.

    Branches are not representable: a ``commit`` ref must
    be a hex revision.
    """

    url: str
    ref: str
    kind: RefKind = RefKind.TAG

    @model_validator(mode="after")
    def _check_ref(self) -> SourceDescriptor:
        if not self.ref.strip():
            raise ValueError("source ref must not be empty")
        if self.kind is RefKind.COMMIT and not _HEX_REV.match(self.ref):
            raise ValueError(
                f"commit ref must be a hex revision (7-40 chars), got {self.ref!r}"
            )
        return self


class Dependency(BaseModel):
    """A required executable and how to install it when absent."""

    bin: str
    install_name: str
    source: SourceDescriptor | None = None


class DependencyStatus(BaseModel):
    """Outcome of checking (and possibly installing) one dependency."""

    bin: str
    install_name: str
    present: bool = False
    installed: bool = False
