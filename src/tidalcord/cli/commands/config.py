"""Config file commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from tidalcord.config import ConfigError, TidalcordConfig
from tidalcord.paths import get_config_path

if TYPE_CHECKING:
    from pathlib import Path


def _config_path(ctx: click.Context) -> Path:
    obj = ctx.find_root().obj or {}
    return obj.get("config_path") or get_config_path()


@click.group()
def config() -> None:
    """Manage the tidalcord config file."""


@config.command()
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
@click.pass_context
def init(ctx: click.Context, force: bool) -> None:
    """Write a config file with default settings."""
    path = _config_path(ctx)
    if path.exists() and not force:
        click.echo(f"Config already exists at {path} (use --force to overwrite).")
        ctx.exit(1)
    TidalcordConfig().save(path)
    click.echo(f"Wrote {path}")


@config.command()
@click.pass_context
def show(ctx: click.Context) -> None:
    """Print the effective configuration, environment overrides included."""
    path = _config_path(ctx)
    try:
        loaded = TidalcordConfig.load(path)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"# {path}{'' if path.exists() else ' (not found, using defaults)'}")
    for section, values in loaded.model_dump().items():
        click.echo(f"[{section}]")
        for key, value in values.items():
            click.echo(f"  {key} = {value!r}")
