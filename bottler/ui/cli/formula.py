"""
CLI commands for formula metadata — ``deps`` and ``info``.

Thin wrappers over ``bottler.core.services.formula_index`` and the
dependency resolver.  No bottle is downloaded.
"""

from __future__ import annotations

import json

import click

from bottler.core.errors import BottlerError
from bottler.core.services.bottle_install.resolver.dependency_order import resolve_install_order
from bottler.core.services.formula_index import load_repository
from bottler.ui.cli.common import fail, load_cli_settings


@click.command()
@click.argument("names", nargs=-1, required=True)
@click.option("--refresh", is_flag=True, help="Ignore the index snapshot and fetch it again.")
@click.option("--strict-cycles", is_flag=True, help="Fail on dependency cycles.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def deps(
    ctx: click.Context,
    names: tuple[str, ...],
    refresh: bool,
    strict_cycles: bool,
    as_json: bool,
) -> None:
    """Print the install order for NAMES, dependencies first."""
    settings = load_cli_settings(ctx)

    try:
        repo = load_repository(settings, refresh=refresh)
        order = resolve_install_order(list(names), repo, strict_cycles=strict_cycles)
    except BottlerError as e:
        fail(e)

    records = [repo.require(name) for name in order]

    if as_json:
        click.echo(json.dumps({
            "requested": list(names),
            "order": [{"name": r.name, "version": r.version_fmt} for r in records],
        }, indent=2))
        return

    for i, record in enumerate(records, 1):
        marker = "" if record.name in names else "  (dependency)"
        click.echo(f"{i:>3}. {record.name} {record.version_fmt}{marker}")


@click.command()
@click.argument("name")
@click.option("--refresh", is_flag=True, help="Ignore the index snapshot and fetch it again.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def info(ctx: click.Context, name: str, refresh: bool, as_json: bool) -> None:
    """Show metadata for one package."""
    settings = load_cli_settings(ctx)

    try:
        record = load_repository(settings, refresh=refresh).require(name)
    except BottlerError as e:
        fail(e)

    if as_json:
        click.echo(json.dumps(record.model_dump(mode="json"), indent=2))
        return

    click.secho(f"{record.name} {record.version_fmt}", fg="cyan", bold=True)
    if record.description:
        click.echo(f"   {record.description}")
    click.echo(f"   Dependencies:  {', '.join(record.deps) or '-'}")
    if record.rec_deps:
        click.echo(f"   Recommended:   {', '.join(record.rec_deps)}")
    if record.opt_deps:
        click.echo(f"   Optional:      {', '.join(record.opt_deps)}")
    click.echo(f"   Bottles:       {', '.join(sorted(record.bottles)) or '-'}")
