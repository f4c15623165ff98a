"""
Chain preparer — generate a fresh chain spec and wipe old chain state.

Both steps are synchronous and strictly ordered: the purge reads the
spec the generator just wrote.  Any failure is fatal; starting a node
against half-prepared state only produces confusing errors later.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from carp.adapters.base import CommandRunner
from carp.core.errors import PrepareFailure, SpawnFailure
from carp.core.models.stack import ChainConfig

logger = logging.getLogger(__name__)

GENERATE_STEP = "generate-chain-spec"
PURGE_STEP = "purge-chain"

# Where chain-spec-builder writes when not given --chain-spec-path.
BUILDER_DEFAULT_OUTPUT = "chain_spec.json"


def generate_args(chain: ChainConfig) -> list[str]:
    """``chain-spec-builder`` arguments for a named-preset parachain spec.

    A ``spec_path`` other than the builder's own default is passed as
    ``--chain-spec-path``, which must precede the ``create`` subcommand.
    """
    args: list[str] = []
    if Path(chain.spec_path) != Path(BUILDER_DEFAULT_OUTPUT):
        args += ["--chain-spec-path", chain.spec_path]
    return [
        *args,
        "create",
        "--runtime",
        chain.runtime,
        "--para-id",
        str(chain.para_id),
        "--relay-chain",
        chain.relay_chain,
        "named-preset",
        chain.preset,
    ]


def purge_args(chain_spec: str) -> list[str]:
    """Node arguments that purge chain data without prompting."""
    return ["purge-chain", "--chain", chain_spec, "-y"]


def _run_step(step: str, runner: CommandRunner, executable: str, args: list[str], cwd: Path) -> None:
    try:
        code = runner.run(executable, args, cwd=cwd)
    except SpawnFailure as e:
        raise PrepareFailure(step, str(e)) from e
    if code != 0:
        raise PrepareFailure(step, f"{executable} exited with code {code}")


def generate_chain_spec(
    runner: CommandRunner,
    chain: ChainConfig,
    builder: str = "chain-spec-builder",
    cwd: Path | None = None,
) -> Path:
    """Write the chain spec to ``chain.spec_path`` and return its path.

    Raises:
        PrepareFailure: Runtime missing, builder failed, or no spec written.
    """
    root = cwd or Path.cwd()
    runtime = root / chain.runtime
    if not runtime.is_file():
        raise PrepareFailure(GENERATE_STEP, f"runtime artifact not found: {runtime}")

    spec = root / chain.spec_path
    spec.parent.mkdir(parents=True, exist_ok=True)

    logger.info("Generating chain spec from %s", runtime)
    _run_step(GENERATE_STEP, runner, builder, generate_args(chain), root)

    if not spec.is_file():
        raise PrepareFailure(GENERATE_STEP, f"{builder} did not write {spec}")

    logger.info("Chain spec written to %s", spec)
    return spec


def purge_chain_data(
    runner: CommandRunner,
    chain_spec: str,
    node: str = "polkadot-omni-node",
    cwd: Path | None = None,
) -> None:
    """Delete existing chain state for ``chain_spec``.

    A non-zero exit is fatal.  The node reports an already-clean
    database as success, so a failure here means something real.

    Raises:
        PrepareFailure: The node could not start or the purge failed.
    """
    logger.info("Purging chain data for %s", chain_spec)
    _run_step(PURGE_STEP, runner, node, purge_args(chain_spec), cwd or Path.cwd())


def prepare_chain(
    runner: CommandRunner,
    chain: ChainConfig,
    *,
    builder: str = "chain-spec-builder",
    node: str = "polkadot-omni-node",
    cwd: Path | None = None,
    on_step: Callable[[str], None] | None = None,
) -> Path:
    """Generate the chain spec, then purge old chain data.

    ``on_step`` is called with the step name before each step starts.
    """
    if on_step:
        on_step(GENERATE_STEP)
    spec = generate_chain_spec(runner, chain, builder, cwd)

    if on_step:
        on_step(PURGE_STEP)
    purge_chain_data(runner, chain.spec_path, node, cwd)
    return spec
