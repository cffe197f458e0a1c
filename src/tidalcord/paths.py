"""Platform path helpers for tidalcord."""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import user_config_dir

# Discord resolves its socket directory from these, in order.
_IPC_DIR_ENV_VARS = ("XDG_RUNTIME_DIR", "TMPDIR", "TMP", "TEMP")
_IPC_DIR_FALLBACK = "/tmp"


def get_config_dir() -> Path:
    """Get the config directory for tidalcord (config.toml)."""
    override = os.environ.get("TIDALCORD_CONFIG_DIR")
    if override:
        return Path(override).resolve()
    return Path(user_config_dir("tidalcord"))


def get_config_path() -> Path:
    """Get the path to the main config file."""
    return get_config_dir() / "config.toml"


def get_ipc_socket_dir() -> Path:
    """Get the directory holding Discord's Unix domain sockets."""
    for name in _IPC_DIR_ENV_VARS:
        value = os.environ.get(name)
        if value:
            return Path(value)
    return Path(_IPC_DIR_FALLBACK)
