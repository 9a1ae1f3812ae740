"""
bottler — CLI entrypoint.

Usage:
    bottler --help
    bottler deps wget
    bottler install wget jq
"""

from __future__ import annotations

import os
from pathlib import Path

import click

from bottler import __version__
from bottler.core.observability.logging_config import (
    FILE_ENV,
    FILE_LEVEL_ENV,
    resolve_level,
    setup_logging,
)


@click.group()
@click.version_option(version=__version__, prog_name="bottler")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to config.yml (default: $BOTTLER_CONFIG or ~/.config/bottler/config.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """bottler — install prebuilt Homebrew bottles."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet, env=os.environ),
        log_file=os.environ.get(FILE_ENV),
        log_file_level=os.environ.get(FILE_LEVEL_ENV),
    )


# ── Register sub-commands from bottler/ui/cli/ ──────────────────

from bottler.ui.cli.formula import deps, info  # noqa: E402
from bottler.ui.cli.install import install  # noqa: E402

cli.add_command(deps)
cli.add_command(info)
cli.add_command(install)


if __name__ == "__main__":
    cli()
