"""
carp — CLI entrypoint.

Usage:
    carp                 # same as `carp up`
    carp up
    carp check --json
    python -m carp.main --help
"""

from __future__ import annotations

import json
import signal
import sys
from pathlib import Path
from typing import Any

import click

from carp import __version__
from carp.core.observability.logging_config import resolve_level, setup_from_env


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="carp")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to carp.yml (default: auto-detect, else built-in defaults).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """carp — bootstrap and supervise a local omni-node + eth-rpc dev chain."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    setup_from_env(resolve_level(debug=debug, verbose=verbose, quiet=quiet))

    if ctx.invoked_subcommand is None:
        ctx.invoke(up)


# ── Up ──────────────────────────────────────────────────────────


def _phase_printer(quiet: bool):
    """Render ``run_up`` progress as operator-facing lines."""
    from carp.core.models.dependency import DependencyStatus
    from carp.core.use_cases import up as uc

    def on_phase(phase: str, payload: Any) -> None:
        if phase == uc.PHASE_DEPENDENCIES:
            if payload is None:
                click.secho("🔍 Checking dependencies", fg="cyan", bold=True)
            elif isinstance(payload, DependencyStatus):
                if payload.installed:
                    click.secho(f"   ⬇️  {payload.bin} installed ({payload.install_name})", fg="green")
                elif not quiet:
                    click.echo(f"   ✓ {payload.bin} is installed")
        elif phase == uc.PHASE_CHAIN_SPEC:
            click.secho("📜 Generating chain spec...", fg="cyan", bold=True)
        elif phase == uc.PHASE_PURGE:
            click.secho("🧹 Purging previous chain data...", fg="cyan", bold=True)
        elif phase == uc.PHASE_LAUNCH:
            click.secho("🚀 Starting services...", fg="cyan", bold=True)
        elif phase == uc.PHASE_RUNNING:
            if not quiet:
                click.secho("🐋 🐋 🐋 🐋 🐋 🐋 🐋 🐋 🐋 🐋 🐋 🐋", fg="blue")
                click.secho("🤖🤖🤖 OMNINODE IS STARTING 🤖🤖🤖", fg="blue", bold=True)
                click.secho("🐋 🐋 🐋 🐋 🐋 🐋 🐋 🐋 🐋 🐋 🐋 🐋", fg="blue")
            for proc in payload or []:
                click.echo(f"   • {proc.role} (PID {proc.pid})")
            click.echo("   Press Ctrl-C to stop.")
        elif phase == uc.PHASE_SHUTDOWN:
            name = signal.Signals(payload).name if payload else "shutdown request"
            click.secho(f"\n🛑 {name} received, stopping services...", fg="yellow", bold=True)

    return on_phase


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Print the final result as JSON.")
@click.pass_context
def up(ctx: click.Context, as_json: bool) -> None:
    """Install missing binaries, prepare the chain, run and supervise the stack."""
    from carp.core.use_cases.up import run_up

    result = run_up(
        config_path=ctx.obj.get("config_path"),
        runner=ctx.obj.get("runner"),
        on_phase=None if as_json else _phase_printer(ctx.obj.get("quiet", False)),
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(1)

    shutdown = result.shutdown
    if shutdown is not None:
        for role, reason in shutdown.failures.items():
            click.secho(f"   ⚠️  {role}: {reason}", fg="yellow")
        for role, code in shutdown.stopped.items():
            click.echo(f"   ✓ {role} stopped (exit {code})")

    click.secho("Carp finished 🐋", fg="green", bold=True)


# ── Check ───────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def check(ctx: click.Context, as_json: bool) -> None:
    """Report which required binaries are installed (never installs)."""
    from carp.core.use_cases.check import check_stack

    result = check_stack(
        config_path=ctx.obj.get("config_path"),
        runner=ctx.obj.get("runner"),
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.all_present else 1)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    assert result.report is not None
    click.secho("\n📦 Dependencies:", fg="cyan", bold=True)
    for status in result.report.statuses:
        if status.present:
            click.secho(f"   ✓ {status.bin}", fg="green")
        else:
            click.secho(f"   ✗ {status.bin} ", fg="red", nl=False)
            click.echo(f"(missing, installs as {status.install_name})")
    click.echo()

    if not result.all_present:
        click.echo("   Run `carp up` to install missing binaries.")
        sys.exit(1)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
