"""Root CLI command registration."""

from __future__ import annotations

from pathlib import Path

import click

from tidalcord import __version__
from tidalcord.log import setup_logging

from .config import config
from .presence import run, set_cmd, status


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version and exit")
@click.option("-v", "--verbose", is_flag=True, help="Log protocol traffic")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file to use instead of the default location",
)
@click.pass_context
def cli(ctx: click.Context, version: bool, verbose: bool, config_path: Path | None) -> None:
    """Show what TIDAL is playing as Discord Rich Presence."""
    if version:
        click.echo(f"tidalcord {__version__}")
        ctx.exit(0)

    setup_logging(verbose=verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


cli.add_command(run)
cli.add_command(status)
cli.add_command(set_cmd)
cli.add_command(config)
