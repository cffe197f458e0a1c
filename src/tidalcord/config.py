"""Configuration loader for tidalcord."""

from __future__ import annotations

import os
import tomllib
from typing import TYPE_CHECKING

import tomlkit
from pydantic import BaseModel, Field, ValidationError

from tidalcord.atomic import atomic_write
from tidalcord.ipc.constants import DEFAULT_CONNECT_TIMEOUT, DEFAULT_INSTANCE
from tidalcord.paths import get_config_path

if TYPE_CHECKING:
    from pathlib import Path

# Checked in order; CLIENT_ID is the name older deployments used.
CLIENT_ID_ENV_VARS = ("TIDALCORD_CLIENT_ID", "CLIENT_ID")


class ConfigError(ValueError):
    """The config file exists but is not valid TOML or has invalid values."""


class DiscordConfig(BaseModel):
    """How to reach and identify with the local Discord client."""

    client_id: str = Field(default="", description="Discord application id")
    protocol_version: str = Field(default="1", description="IPC protocol version")
    instance: int = Field(
        default=DEFAULT_INSTANCE,
        ge=0,
        description="Discord instance index (discord-ipc-N)",
    )
    connect_timeout: float = Field(default=DEFAULT_CONNECT_TIMEOUT, gt=0)
    read_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Seconds to wait for each reply (unset blocks indefinitely)",
    )


class PresenceConfig(BaseModel):
    """Now-playing polling behaviour."""

    process_name: str = Field(default="TIDAL.exe", description="Player executable name")
    poll_interval: float = Field(default=5.0, gt=0)
    retry_interval: float = Field(default=5.0, gt=0)
    separator: str = Field(default=" - ", min_length=1)
    artist_prefix: str = Field(default="by ")


class TidalcordConfig(BaseModel):
    """Root configuration model."""

    discord: DiscordConfig = Field(default_factory=DiscordConfig)
    presence: PresenceConfig = Field(default_factory=PresenceConfig)

    @classmethod
    def load(cls, config_path: Path | None = None) -> TidalcordConfig:
        """Load configuration from TOML file or use defaults, then apply env overrides."""
        if config_path is None:
            config_path = get_config_path()

        if config_path.exists():
            try:
                with open(config_path, "rb") as f:
                    data = tomllib.load(f)
                config = cls.model_validate(data)
            except tomllib.TOMLDecodeError as exc:
                msg = f"{config_path} is not valid TOML: {exc}"
                raise ConfigError(msg) from exc
            except ValidationError as exc:
                msg = f"{config_path} has invalid settings:\n{exc}"
                raise ConfigError(msg) from exc
        else:
            config = cls()

        client_id = _client_id_from_env()
        if client_id:
            config.discord.client_id = client_id
        return config

    def save(self, path: Path) -> None:
        """Serialize current config to TOML file.

        Args:
            path: Path to write config file (created if missing)
        """
        doc = tomlkit.document()

        discord_table = tomlkit.table()
        for key, value in self.discord.model_dump().items():
            if value is not None:
                discord_table[key] = value
        doc["discord"] = discord_table

        presence_table = tomlkit.table()
        for key, value in self.presence.model_dump().items():
            if value is not None:
                presence_table[key] = value
        doc["presence"] = presence_table

        atomic_write(path, tomlkit.dumps(doc))


def _client_id_from_env() -> str | None:
    for name in CLIENT_ID_ENV_VARS:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return None


__all__ = [
    "CLIENT_ID_ENV_VARS",
    "ConfigError",
    "DiscordConfig",
    "PresenceConfig",
    "TidalcordConfig",
]
