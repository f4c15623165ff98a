"""
Domain models — Pydantic types for the dev stack.

    from carp.core.models import StackConfig, Dependency, ServiceSpec
"""

from carp.core.models.dependency import (
    Dependency,
    DependencyStatus,
    RefKind,
    SourceDescriptor,
)
from carp.core.models.process import (
    ManagedProcess,
    ServiceSpec,
    ShutdownReport,
    SupervisorState,
)
from carp.core.models.stack import (
    Binaries,
    ChainConfig,
    NodeConfig,
    RpcConfig,
    StackConfig,
    SupervisorConfig,
)

__all__ = [
    # dependency.py
    "Dependency",
    "DependencyStatus",
    "RefKind",
    "SourceDescriptor",
    # process.py
    "ManagedProcess",
    "ServiceSpec",
    "ShutdownReport",
    "SupervisorState",
    # stack.py
    "Binaries",
    "ChainConfig",
    "NodeConfig",
    "RpcConfig",
    "StackConfig",
    "SupervisorConfig",
]
