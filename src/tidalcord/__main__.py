"""CLI entry point for tidalcord."""

from __future__ import annotations

from tidalcord.cli.commands.root import cli

if __name__ == "__main__":
    cli()
