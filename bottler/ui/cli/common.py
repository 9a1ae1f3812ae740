"""
Helpers shared by the CLI commands.
"""

from __future__ import annotations

import sys
from typing import NoReturn

import click

from bottler.core.config.loader import load_settings
from bottler.core.errors import BottlerError, PackageFailedError, error_chain
from bottler.core.models.settings import Settings


def load_cli_settings(ctx: click.Context) -> Settings:
    """Settings for this invocation, exiting with a message on bad config."""
    try:
        return load_settings(ctx.obj.get("config_path"))
    except BottlerError as e:
        fail(e)


def fail(error: BaseException, *, package: str | None = None) -> NoReturn:
    """Print the responsible package and the causal chain, then exit 1."""
    if package is None and isinstance(error, PackageFailedError):
        package = error.package

    chain = error_chain(error)
    if package:
        click.secho(f"❌ Failed to install {package}", fg="red", bold=True, err=True)
    else:
        click.secho(f"❌ {chain[0]}", fg="red", bold=True, err=True)
        chain = chain[1:]
    for line in chain:
        click.echo(f"   ↳ {line}", err=True)
    sys.exit(1)
