"""Frame codec for the Discord IPC wire protocol.

Every message in either direction is one frame::

    offset 0   int32 LE   opcode
    offset 4   int32 LE   payload length
    offset 8   bytes      UTF-8 JSON payload

The length is authoritative: there is no terminator, padding or checksum.
"""

from __future__ import annotations

import json
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING, Any, Protocol, TypeVar

from pydantic import BaseModel, ValidationError

from tidalcord.ipc.constants import HEADER_SIZE, MAX_PAYLOAD_BYTES
from tidalcord.ipc.contracts import IPCResponse
from tidalcord.ipc.errors import (
    DecodeError,
    PeerClosedError,
    ProtocolError,
    TruncatedHeaderError,
    TruncatedPayloadError,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

_HEADER = struct.Struct("<ii")

M = TypeVar("M", bound=BaseModel)


class Opcode(IntEnum):
    """Frame purposes understood by the peer."""

    HANDSHAKE = 0
    FRAME = 1
    CLOSE = 2
    PING = 3
    PONG = 4

    @classmethod
    def from_wire(cls, value: int) -> Opcode | None:
        """Return the matching opcode, or ``None`` when *value* is unknown."""
        try:
            return cls(value)
        except ValueError:
            return None


class Readable(Protocol):
    def read(self, size: int) -> bytes: ...


@dataclass(frozen=True, slots=True)
class RawResponse:
    """One frame as read off the wire.

    Attributes:
        opcode: Opcode from the header, possibly one not in :class:`Opcode`.
        length: Payload length declared by the header; equals ``len(payload)``.
        payload: The payload bytes.
        valid: Whether the payload is syntactically valid JSON.
    """

    opcode: int
    length: int
    payload: bytes
    valid: bool

    @property
    def kind(self) -> Opcode | None:
        return Opcode.from_wire(self.opcode)

    def json(self) -> Any:
        """Return the payload decoded as JSON."""
        try:
            return _strict_loads(self.payload)
        except (ValueError, RecursionError) as exc:
            msg = f"payload is not valid JSON: {exc}"
            raise DecodeError(msg, self) from exc

    def parse(self) -> IPCResponse:
        """Interpret the payload as a generic :class:`IPCResponse`."""
        return self.parse_as(IPCResponse)

    def parse_as(self, model: type[M]) -> M:
        """Interpret the payload as *model*."""
        if not self.valid:
            msg = "payload is not valid JSON"
            raise DecodeError(msg, self)
        try:
            return model.model_validate_json(self.payload)
        except ValidationError as exc:
            msg = f"payload is not a valid {model.__name__}: {exc.error_count()} error(s)"
            raise DecodeError(msg, self) from exc


def encode_json(value: BaseModel | Mapping[str, Any]) -> bytes:
    """Serialize a model or mapping as compact UTF-8 JSON."""
    if isinstance(value, BaseModel):
        return value.model_dump_json(exclude_none=True).encode("utf-8")
    return json.dumps(value, separators=(",", ":")).encode("utf-8")


def encode_frame(opcode: int, payload: bytes) -> bytes:
    """Prefix *payload* with the opcode/length header."""
    if len(payload) > MAX_PAYLOAD_BYTES:
        msg = f"payload of {len(payload)} bytes exceeds the {MAX_PAYLOAD_BYTES} byte limit"
        raise ProtocolError(msg)
    return _HEADER.pack(int(opcode), len(payload)) + payload


def _read_exactly(stream: Readable, size: int) -> bytes:
    """Read until *size* bytes arrive; return fewer only when the stream ends."""
    chunks: list[bytes] = []
    remaining = size
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def _reject_constant(name: str) -> Any:
    msg = f"{name} is not valid JSON"
    raise ValueError(msg)


def _strict_loads(payload: bytes) -> Any:
    """Decode JSON, rejecting the NaN and Infinity literals Python accepts by default."""
    return json.loads(payload, parse_constant=_reject_constant)


def _is_json(payload: bytes) -> bool:
    # Nesting deep enough to exhaust the interpreter stack still counts as invalid.
    try:
        _strict_loads(payload)
    except (ValueError, RecursionError):
        return False
    return True


def decode_frame(stream: Readable) -> RawResponse:
    """Read one complete frame from *stream*.

    Raises:
        PeerClosedError: The stream ended before any header byte.
        TruncatedHeaderError: The stream ended inside the header.
        ProtocolError: The header declared a negative or oversized length.
        TruncatedPayloadError: The stream ended before the declared payload.
    """
    header = _read_exactly(stream, HEADER_SIZE)
    if not header:
        msg = "peer closed the connection before sending a reply"
        raise PeerClosedError(msg)
    if len(header) < HEADER_SIZE:
        msg = f"expected {HEADER_SIZE} byte header, got {len(header)} byte(s)"
        raise TruncatedHeaderError(msg, expected=HEADER_SIZE, received=len(header))

    opcode, length = _HEADER.unpack(header)
    if length < 0:
        msg = f"negative payload length {length} in frame header"
        raise ProtocolError(msg)
    if length > MAX_PAYLOAD_BYTES:
        msg = f"declared payload length {length} exceeds the {MAX_PAYLOAD_BYTES} byte limit"
        raise ProtocolError(msg)

    payload = _read_exactly(stream, length)
    if len(payload) < length:
        msg = f"expected {length} payload bytes, got {len(payload)}"
        raise TruncatedPayloadError(msg, expected=length, received=len(payload))

    return RawResponse(opcode=opcode, length=length, payload=payload, valid=_is_json(payload))


__all__ = [
    "Opcode",
    "RawResponse",
    "Readable",
    "decode_frame",
    "encode_frame",
    "encode_json",
]
