"""
StackConfig — the root configuration of the local dev stack.

Every field has a default, so an empty (or absent) carp.yml yields the
stock stack: a polkadot-omni-node producing blocks every 6s against a
westend runtime, with an eth-rpc bridge in front of it.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from carp.core.models.dependency import Dependency, RefKind, SourceDescriptor
from carp.core.models.process import ServiceSpec

POLKADOT_SDK_GIT = "https://github.com/paritytech/polkadot-sdk.git"
POLKADOT_SDK_TAG = "polkadot-stable2412"
ETH_RPC_REV = "d1d92ab76004ce349a97fc5d325eaf9a4a7101b7"


class Binaries(BaseModel):
    """Executable names carp shells out to."""

    node: str = "polkadot-omni-node"
    chain_spec_builder: str = "chain-spec-builder"
    eth_rpc: str = "eth-rpc"
    installer: str = "cargo"


class ChainConfig(BaseModel):
    """Parameters for chain-spec generation."""

    runtime: str = "./runtimes/westend.wasm"
    para_id: int = 100
    relay_chain: str = "paseo"
    preset: str = "development"
    spec_path: str = "./chain_spec.json"


class NodeConfig(BaseModel):
    """Block-producing node options."""

    block_time_ms: int = Field(default=6000, gt=0)


class RpcConfig(BaseModel):
    """RPC bridge options."""

    cors: str = "all"
    log: str = "debug"


class SupervisorConfig(BaseModel):
    """Shutdown and idle-loop timing."""

    shutdown_timeout: float = Field(default=10.0, gt=0)
    poll_interval: float = Field(default=1.0, gt=0)

    @field_validator("poll_interval")
    @classmethod
    def _responsive(cls, value: float) -> float:
        if value > 1.0:
            raise ValueError("poll_interval must be <= 1.0s to stay signal-responsive")
        return value


def _default_dependencies() -> list[Dependency]:
    sdk = SourceDescriptor(url=POLKADOT_SDK_GIT, ref=POLKADOT_SDK_TAG, kind=RefKind.TAG)
    return [
        Dependency(bin="polkadot-omni-node", install_name="polkadot-omni-node", source=sdk),
        Dependency(
            bin="chain-spec-builder",
            install_name="staging-chain-spec-builder",
            source=sdk,
        ),
        Dependency(
            bin="eth-rpc",
            install_name="pallet-revive-eth-rpc",
            source=SourceDescriptor(url=POLKADOT_SDK_GIT, ref=ETH_RPC_REV, kind=RefKind.COMMIT),
        ),
    ]


class StackConfig(BaseModel):
    """Root config model — loaded from carp.yml or built from defaults."""

    version: int = 1

    binaries: Binaries = Field(default_factory=Binaries)
    dependencies: list[Dependency] = Field(default_factory=_default_dependencies)
    chain: ChainConfig = Field(default_factory=ChainConfig)
    node: NodeConfig = Field(default_factory=NodeConfig)
    rpc: RpcConfig = Field(default_factory=RpcConfig)
    supervisor: SupervisorConfig = Field(default_factory=SupervisorConfig)

    def services(self) -> list[ServiceSpec]:
        """The two long-running services, in launch order."""
        spec = self.chain.spec_path
        return [
            ServiceSpec(
                role="omni-node",
                executable=self.binaries.node,
                args=["--chain", spec, "--dev-block-time", str(self.node.block_time_ms)],
            ),
            ServiceSpec(
                role="eth-rpc",
                executable=self.binaries.eth_rpc,
                args=["--chain", spec, f"--rpc-cors={self.rpc.cors}", f"--log={self.rpc.log}"],
            ),
        ]
