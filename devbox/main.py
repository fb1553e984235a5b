"""
devbox — CLI entrypoint.

Usage:
    devbox                 # provision everything
    devbox run --dry-run
    devbox steps
    devbox status
    devbox history -n 5
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from devbox import __version__
from devbox.core.engine.executor import ProgressListener
from devbox.core.models.step import Step, StepResult, StepStatus
from devbox.core.observability.logging_config import resolve_level, setup_from_env

_STATUS_STYLE = {
    StepStatus.SUCCEEDED: ("✓", "green"),
    StepStatus.SKIPPED: ("⊘", "yellow"),
    StepStatus.FAILED: ("✗", "red"),
}

_RUN_COLORS = {"ok": "green", "partial": "yellow", "failed": "red"}


class ConsoleProgress(ProgressListener):
    """Prints one line per step as it finishes."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.total = 0
        self.index = 0

    def run_started(self, total: int) -> None:
        self.total = total

    def step_started(self, step: Step) -> None:
        self.index += 1
        width = len(str(self.total))
        click.echo(f"   [{self.index:>{width}}/{self.total}] {step.name} … ", nl=False)

    def step_finished(self, step: Step, result: StepResult) -> None:
        marker, color = _STATUS_STYLE[result.status]
        label = result.status.value
        if result.status == StepStatus.FAILED and step.fatal:
            label += " (fatal)"
        click.secho(f"{marker} {label}", fg=color, nl=False)
        timing = f" ({result.duration_ms}ms)" if self.verbose and result.duration_ms else ""
        click.echo(timing)

        if not result.detail:
            return
        if result.status == StepStatus.FAILED:
            for line in result.detail.strip().splitlines()[:5]:
                click.echo(f"     │ {line}")
        elif self.verbose:
            click.echo(f"     │ {result.detail}")


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="devbox")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to devbox.yml (default: ~/.config/devbox/devbox.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """devbox — provision a WSL development workstation.

    Without a command, runs every provisioning step.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_from_env(resolve_level(debug=debug, verbose=verbose, quiet=quiet))

    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--dry-run", is_flag=True, help="Check preconditions only; change nothing.")
@click.option("--mock", is_flag=True, help="Run against a simulated machine.")
@click.option("--skip", "skip", multiple=True, help="Leave out a step (repeatable).")
@click.pass_context
def run(
    ctx: click.Context,
    as_json: bool = False,
    dry_run: bool = False,
    mock: bool = False,
    skip: tuple[str, ...] = (),
) -> None:
    """Provision the workstation.

    Examples:

        devbox run

        devbox run --dry-run

        devbox run --skip azure-cli --skip kubectl
    """
    from devbox.core.use_cases.provision import run_provision

    verbose = ctx.obj.get("verbose", False)
    quiet = ctx.obj.get("quiet", False)

    if not as_json and not quiet:
        mode_label = "[dry-run] " if dry_run else "[mock] " if mock else ""
        click.secho(f"\n🛠  {mode_label}devbox {__version__}", fg="cyan", bold=True)
        click.echo()

    result = run_provision(
        config_path=ctx.obj.get("config_path"),
        dry_run=dry_run,
        mock_mode=mock,
        skip=list(skip) if skip else None,
        listener=None if as_json else ConsoleProgress(verbose=verbose),
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if not result.success:
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    report = result.report
    assert report is not None

    click.echo()
    click.echo(result.summary, nl=False)
    click.echo()
    if result.summary_path and not quiet:
        click.secho(f"   💾 Summary saved to {result.summary_path}", fg="cyan")

    if not report.success:
        click.secho(f"   ❌ Provisioning stopped at '{report.halted_by}'", fg="red", bold=True)
        click.echo()
        sys.exit(1)

    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def steps(ctx: click.Context, as_json: bool) -> None:
    """List the provisioning steps in execution order."""
    from devbox.core.use_cases.status import list_steps

    result = list_steps(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result, indent=2))
        if "error" in result:
            sys.exit(1)
        return

    if "error" in result:
        click.secho(f"❌ {result['error']}", fg="red")
        sys.exit(1)

    click.secho(f"\n📋 Steps: {len(result['steps'])}", fg="cyan", bold=True)
    width = max((len(s["name"]) for s in result["steps"]), default=0)
    for i, step in enumerate(result["steps"], start=1):
        fatal = click.style(" [fatal]", fg="red") if step["fatal"] else ""
        click.echo(f"   {i:>2}. {step['name']:<{width}}  {step['description']}{fatal}")
    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show the outcome of the last run."""
    from devbox.core.use_cases.status import get_status

    result = get_status()

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if not result.has_run:
        click.secho("⊘ No provisioning run recorded yet. Run 'devbox' to start.", fg="yellow")
        return

    assert result.state is not None
    last = result.state.last_run
    color = _RUN_COLORS.get(last.status, "white")

    click.secho(f"\n📋 Last run: {last.operation_id}", fg="cyan", bold=True)
    click.echo("   Status: ", nl=False)
    click.secho(last.status + (" (dry-run)" if last.dry_run else ""), fg=color)
    if last.ended_at:
        click.echo(f"   Finished: {last.ended_at}")
    click.echo(
        f"   Steps: {last.steps_total} | succeeded: {last.steps_succeeded} | "
        f"skipped: {last.steps_skipped} | failed: {last.steps_failed}"
    )
    if last.halted_by:
        click.secho(f"   Halted by: {last.halted_by}", fg="red")

    failing = [s for s in result.state.steps.values() if s.last_status == "failed"]
    if failing:
        click.echo()
        click.secho("   Failing steps:", fg="red", bold=True)
        for s in failing:
            first = (s.last_detail or "").strip().split("\n")[0]
            click.echo(f"     ✗ {s.name}  {first}")
    click.echo()


@cli.command()
@click.option("-n", "count", default=10, show_default=True, help="Number of runs to show.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def history(ctx: click.Context, count: int, as_json: bool) -> None:
    """Show recent provisioning runs from the audit ledger."""
    from devbox.core.use_cases.status import get_history

    result = get_history(n=count)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if not result.entries:
        click.secho("⊘ No runs recorded yet.", fg="yellow")
        return

    click.secho(f"\n📜 Recent runs: {len(result.entries)}", fg="cyan", bold=True)
    for entry in result.entries:
        color = _RUN_COLORS.get(entry.status, "white")
        flags = " [dry-run]" if entry.dry_run else ""
        flags += " [mock]" if entry.context.get("mock") else ""
        click.echo(f"   {entry.timestamp}  {entry.operation_id}  ", nl=False)
        click.secho(f"{entry.status:<7}", fg=color, nl=False)
        click.echo(
            f"  {entry.steps_succeeded} ok / {entry.steps_skipped} skipped / "
            f"{entry.steps_failed} failed{flags}"
        )
        if entry.halted_by:
            click.echo(f"     halted by {entry.halted_by}")
    click.echo()


if __name__ == "__main__":
    cli()
