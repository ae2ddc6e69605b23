"""
Workstation Provisioner — CLI entrypoint.

Usage:
    python -m provisioner.main --help
    python -m provisioner.main run
    python -m provisioner.main plan
    python -m provisioner.main check
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

from provisioner import __version__
from provisioner.core.observability.logging_config import configure_from_cli

if TYPE_CHECKING:
    from provisioner.core.use_cases.run import RunResult

_STATE_STYLE = {
    "applied": ("✓", "green"),
    "skipped": ("⊘", "cyan"),
    "failed": ("✗", "red"),
    "dependency_failed": ("✗", "yellow"),
}

_STATUS_COLOR = {"ok": "green", "partial": "yellow", "failed": "red"}


def _exit_code(result: RunResult) -> int:
    """0 for a clean run, 130 when interrupted, 1 on any error or failed step."""
    if result.error or result.report is None:
        return 1
    if result.report.interrupted:
        return 130
    return 0 if result.report.all_ok else 1


@click.group()
@click.version_option(version=__version__, prog_name="provisioner")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to provision.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """Workstation Provisioner — idempotent developer machine setup."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    configure_from_cli(debug=debug, verbose=verbose, quiet=quiet)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--only", "-o", "only", multiple=True,
              help="Run only these steps (and what they depend on).")
@click.option("--dry-run", is_flag=True, help="Probe every step but apply nothing.")
@click.pass_context
def run(
    ctx: click.Context,
    as_json: bool,
    only: tuple[str, ...],
    dry_run: bool,
) -> None:
    """Provision this machine from the plan file.

    Examples:

        provisioner run

        provisioner run --dry-run

        provisioner run --only node-lts --only vscode-eslint
    """
    from provisioner.core.use_cases.run import run_provisioning

    result = run_provisioning(
        config_path=ctx.obj.get("config_path"),
        only=list(only) if only else None,
        dry_run=dry_run,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(_exit_code(result))

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    report = result.report
    assert report is not None
    assert result.plan_file is not None

    mode_label = "[dry-run] " if dry_run else ""
    click.secho(f"\n🚀 {mode_label}{result.plan_file.name}", fg="cyan", bold=True)
    click.echo(f"   Steps: {report.total} | Run: {report.run_id}")
    click.echo()

    verbose = ctx.obj.get("verbose", False)
    for record in report.records:
        marker, color = _STATE_STYLE[record.state]
        click.secho(f"   {marker} {record.step_id}", fg=color, nl=False)
        timing = f" ({record.duration_ms}ms)" if record.duration_ms else ""
        label = record.state.replace("_", " ")
        click.echo(f" — {label}{timing}")
        if record.failed and record.detail:
            for line in record.detail.split("\n")[:5]:
                click.echo(f"     │ {line}")
        elif verbose and record.detail:
            for line in record.detail.splitlines()[:5]:
                click.echo(f"     │ {line}")
        if verbose and record.failed and record.apply and record.apply.output:
            for line in record.apply.output.split("\n")[-10:]:
                click.echo(f"     │ {line}")

    # Summary
    click.echo()
    click.secho(
        f"   Result: {report.applied} applied, {report.skipped} skipped, "
        f"{report.failed} failed, {report.dependency_failed} blocked "
        f"({report.duration_ms / 1000:.1f}s)",
        fg=_STATUS_COLOR.get(report.status, "white"),
        bold=True,
    )

    if report.interrupted:
        click.secho(
            "   ⚠️  Interrupted — re-run to resume; finished steps will be skipped.",
            fg="yellow",
        )
    click.echo()
    code = _exit_code(result)
    if code:
        sys.exit(code)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def plan(ctx: click.Context, as_json: bool) -> None:
    """Show the steps in execution order."""
    from provisioner.core.use_cases.check import check_plan

    result = check_plan(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)
        return

    if not result.valid:
        for err in result.errors:
            click.secho(f"❌ {err}", fg="red")
        sys.exit(1)

    assert result.plan is not None and result.plan_file is not None
    click.secho(f"\n📋 {result.plan_file.name}", fg="cyan", bold=True)
    if result.plan_file.description:
        click.echo(f"   {result.plan_file.description}")
    click.echo()

    for position, step in enumerate(result.plan, start=1):
        click.echo(f"   {position:>3}. ", nl=False)
        click.secho(step.id, bold=True, nl=False)
        click.echo(f"  [{step.kind}] {step.description}")
        if step.depends_on:
            click.echo(f"        needs: {', '.join(sorted(step.depends_on))}")
        if step.after:
            click.echo(f"        after: {', '.join(sorted(step.after))}")

    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def check(ctx: click.Context, as_json: bool) -> None:
    """Validate provision.yml."""
    from provisioner.core.use_cases.check import check_plan

    result = check_plan(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)
        return

    if result.valid:
        assert result.plan_file is not None
        click.secho("✅ Plan is valid", fg="green", bold=True)
        click.echo(f"   Plan: {result.plan_file.name}")
        click.echo(f"   Steps: {len(result.plan_file.steps)}")
        click.echo(f"   Profile: {result.plan_file.profile}")
    else:
        click.secho("❌ Plan errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)

    click.echo()


if __name__ == "__main__":
    cli()
