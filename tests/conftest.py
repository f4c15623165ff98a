"""
Shared test fixtures and configuration.
"""

from pathlib import Path

import pytest

from carp.adapters.mock import MockCall, MockRunner
from carp.core.models.stack import StackConfig

NODE = "polkadot-omni-node"
BUILDER = "chain-spec-builder"
ETH_RPC = "eth-rpc"


def write_chain_spec(call: MockCall) -> None:
    """MockRunner effect: behave like chain-spec-builder and write the spec."""
    if call.quiet:
        return  # presence probe
    root = call.cwd or Path.cwd()
    target = "chain_spec.json"
    if "--chain-spec-path" in call.args:
        target = call.args[call.args.index("--chain-spec-path") + 1]
    (root / target).write_text('{"name": "Development"}')


@pytest.fixture
def runner() -> MockRunner:
    """Mock runner where every binary is present and exits 0."""
    return MockRunner()


@pytest.fixture
def stack_dir(tmp_path: Path) -> Path:
    """A stack root containing the default runtime artifact."""
    runtimes = tmp_path / "runtimes"
    runtimes.mkdir()
    (runtimes / "westend.wasm").write_bytes(b"\x00asm")
    return tmp_path


@pytest.fixture
def stack_runner(runner: MockRunner) -> MockRunner:
    """Mock runner that behaves like a healthy toolchain for `carp up`."""
    runner.add_effect(BUILDER, write_chain_spec)
    runner.set_long_running(NODE, ETH_RPC)
    return runner


@pytest.fixture
def fast_config() -> StackConfig:
    """Default stack with short supervisor timings."""
    return StackConfig.model_validate(
        {"supervisor": {"shutdown_timeout": 2.0, "poll_interval": 0.05}}
    )
