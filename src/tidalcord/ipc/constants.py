"""Shared IPC framing constants."""

from __future__ import annotations

HEADER_SIZE = 8  # int32 opcode + int32 payload length
NONCE_SIZE = 12
MAX_PAYLOAD_BYTES = 4 * 1024 * 1024  # 4 MiB per JSON payload

ENDPOINT_PREFIX = "discord-ipc-"
PIPE_ROOT = "\\\\.\\pipe\\"

DEFAULT_INSTANCE = 0
DEFAULT_CONNECT_TIMEOUT = 2.0

READY_EVENT = "READY"
ERROR_EVENT = "ERROR"
SET_ACTIVITY = "SET_ACTIVITY"

# Clears an asset slot; the peer requires every asset key to be present.
ASSET_NONE = "none"

__all__ = [
    "ASSET_NONE",
    "DEFAULT_CONNECT_TIMEOUT",
    "DEFAULT_INSTANCE",
    "ENDPOINT_PREFIX",
    "ERROR_EVENT",
    "HEADER_SIZE",
    "MAX_PAYLOAD_BYTES",
    "NONCE_SIZE",
    "PIPE_ROOT",
    "READY_EVENT",
    "SET_ACTIVITY",
]
