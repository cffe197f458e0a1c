"""Presence commands: run the service, check the connection, set an activity."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import click

from tidalcord.config import ConfigError, TidalcordConfig
from tidalcord.ipc.client import IPCClient
from tidalcord.ipc.contracts import Activity
from tidalcord.ipc.errors import IPCError
from tidalcord.presence import HandshakeRejectedError, PresenceRunner

if TYPE_CHECKING:
    from tidalcord.ipc.contracts import IPCResponse

_client_id_option = click.option(
    "--client-id",
    default=None,
    help="Discord application id (overrides config and environment)",
)
_instance_option = click.option(
    "--instance",
    type=click.IntRange(min=0),
    default=None,
    help="Discord instance index to connect to",
)


def _load_config(
    ctx: click.Context,
    client_id: str | None,
    instance: int | None,
) -> TidalcordConfig:
    obj = ctx.find_root().obj or {}
    try:
        config = TidalcordConfig.load(obj.get("config_path"))
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    if client_id:
        config.discord.client_id = client_id
    if instance is not None:
        config.discord.instance = instance
    if not config.discord.client_id:
        msg = "No Discord client id configured; set TIDALCORD_CLIENT_ID or discord.client_id"
        raise click.UsageError(msg)
    return config


def _open_client(config: TidalcordConfig) -> tuple[IPCClient, IPCResponse]:
    """Connect and log in once, leaving the client connected."""
    discord = config.discord
    client = IPCClient(
        discord.protocol_version,
        discord.client_id,
        read_timeout=discord.read_timeout,
    )
    try:
        client.connect(discord.instance, discord.connect_timeout)
        response = client.login()
    except IPCError:
        client.disconnect()
        raise
    return client, response


@click.command()
@_client_id_option
@_instance_option
@click.pass_context
def run(ctx: click.Context, client_id: str | None, instance: int | None) -> None:
    """Poll TIDAL and keep Discord Rich Presence in sync."""
    config = _load_config(ctx, client_id, instance)
    runner = PresenceRunner(config)
    try:
        runner.run()
    except HandshakeRejectedError as exc:
        click.secho(str(exc), fg="red", err=True)
        ctx.exit(1)
    except IPCError as exc:
        click.secho(f"Discord IPC failed: {exc}", fg="red", err=True)
        ctx.exit(1)
    except KeyboardInterrupt:
        click.echo("Stopped.")


@click.command()
@_client_id_option
@_instance_option
@click.pass_context
def status(ctx: click.Context, client_id: str | None, instance: int | None) -> None:
    """Connect to Discord, log in, and report the result."""
    config = _load_config(ctx, client_id, instance)
    try:
        client, response = _open_client(config)
    except IPCError as exc:
        click.secho(f"Discord is not reachable: {exc}", fg="red", err=True)
        ctx.exit(1)
    client.disconnect()

    click.echo(f"  Event:     {response.evt or '<none>'}")
    user = response.data.user
    if user is not None:
        click.echo(f"  User:      {user.username} ({user.id})")
    discord_config = response.data.config
    if discord_config is not None:
        click.echo(f"  API:       {discord_config.api_endpoint}")
        click.echo(f"  CDN:       {discord_config.cdn_host}")
    if not response.is_ready:
        click.secho("Handshake was not acknowledged with READY.", fg="red", err=True)
        ctx.exit(1)


@click.command("set")
@click.argument("details", required=False, default="")
@click.argument("state", required=False, default="")
@click.option("--clear", is_flag=True, help="Remove the current activity instead")
@_client_id_option
@_instance_option
@click.pass_context
def set_cmd(
    ctx: click.Context,
    details: str,
    state: str,
    clear: bool,
    client_id: str | None,
    instance: int | None,
) -> None:
    """Set a one-off activity (DETAILS and STATE), or clear it."""
    if not clear and not details:
        msg = "DETAILS is required unless --clear is given"
        raise click.UsageError(msg)

    config = _load_config(ctx, client_id, instance)
    try:
        client, ready = _open_client(config)
    except IPCError as exc:
        click.secho(f"Discord is not reachable: {exc}", fg="red", err=True)
        ctx.exit(1)

    try:
        if not ready.is_ready:
            click.secho("Handshake was not acknowledged with READY.", fg="red", err=True)
            ctx.exit(1)
        pid = os.getpid()
        if clear:
            response = client.clear_activity(pid=pid)
        else:
            response = client.set_activity(Activity(details=details, state=state), pid=pid)
    except IPCError as exc:
        click.secho(f"Discord IPC failed: {exc}", fg="red", err=True)
        ctx.exit(1)
    finally:
        client.disconnect()

    if response.is_error:
        click.secho(f"Discord rejected the activity: {response.data.message}", fg="red", err=True)
        ctx.exit(1)
    click.echo("Activity cleared." if clear else "Activity updated.")
