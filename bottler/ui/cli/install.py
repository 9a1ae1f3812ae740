"""
CLI command ``install`` — resolve, confirm, fetch and stage.

Thin wrapper over ``bottler.core.use_cases.install``.
"""

from __future__ import annotations

import json
import sys

import click

from bottler.core.context import InstallContext
from bottler.core.errors import BottlerError
from bottler.core.observability.progress import ProgressBus
from bottler.core.use_cases.install import plan_install, run_install
from bottler.ui.cli.common import fail, load_cli_settings
from bottler.ui.cli.progress import TerminalRenderer


@click.command()
@click.argument("names", nargs=-1, required=True)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@click.option("--refresh", is_flag=True, help="Ignore the index snapshot and fetch it again.")
@click.option(
    "--jobs", "-j",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum concurrent downloads (default: settings, 16).",
)
@click.option("--strict-cycles", is_flag=True, help="Fail on dependency cycles.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(
    ctx: click.Context,
    names: tuple[str, ...],
    yes: bool,
    refresh: bool,
    jobs: int | None,
    strict_cycles: bool,
    as_json: bool,
) -> None:
    """Install NAMES and their dependencies from prebuilt bottles."""
    settings = load_cli_settings(ctx)
    if jobs is not None:
        settings = settings.model_copy(update={"max_concurrent_fetches": jobs})

    bus = ProgressBus()
    if not as_json:
        bus.subscribe(TerminalRenderer(
            quiet=ctx.obj.get("quiet", False),
            verbose=ctx.obj.get("verbose", False),
        ))

    try:
        run_ctx = InstallContext.create(settings, sink=bus)
        plan = plan_install(names, run_ctx, refresh=refresh, strict_cycles=strict_cycles)
    except BottlerError as e:
        fail(e)

    if not yes:
        click.echo(plan.summary(), err=True)
        if not click.confirm("Proceed?", default=True, err=True):
            click.echo("aborted", err=True)
            sys.exit(1)

    try:
        report = run_install(plan, run_ctx)
    except BottlerError as e:
        fail(e)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        if not report.ok:
            sys.exit(1)
        return

    if not report.ok:
        if report.error is not None:
            fail(report.error, package=report.failed_package)
        click.secho("❌ Install did not complete", fg="red", err=True)
        sys.exit(1)

    click.secho(f"✅ Staged {report.completed} packages", fg="green", bold=True)
    for name in plan.order:
        click.echo(f"   {name:<24} → {report.staged[name]}")
