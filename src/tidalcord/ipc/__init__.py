"""Discord IPC client: wire framing, local transports, and the session client."""

from __future__ import annotations

from tidalcord.ipc.client import IPCClient, SessionState
from tidalcord.ipc.contracts import Activity, Assets, IPCResponse
from tidalcord.ipc.errors import (
    DecodeError,
    EntropyExhaustedError,
    IPCConnectionError,
    IPCError,
    InvalidStateError,
    PreconditionError,
    ProtocolError,
    TransportError,
)
from tidalcord.ipc.framing import Opcode, RawResponse, decode_frame, encode_frame
from tidalcord.ipc.nonce import generate_nonce
from tidalcord.ipc.transports import DefaultTransport, endpoint_name

__all__ = [
    "Activity",
    "Assets",
    "DecodeError",
    "DefaultTransport",
    "EntropyExhaustedError",
    "IPCClient",
    "IPCConnectionError",
    "IPCError",
    "IPCResponse",
    "InvalidStateError",
    "Opcode",
    "PreconditionError",
    "ProtocolError",
    "RawResponse",
    "SessionState",
    "TransportError",
    "decode_frame",
    "encode_frame",
    "endpoint_name",
    "generate_nonce",
]
