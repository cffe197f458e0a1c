"""Error taxonomy for the IPC client.

Every failure is raised to the immediate caller; nothing here is retried.
Retry and backoff belong to whoever owns the client (see
:mod:`tidalcord.presence`).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tidalcord.ipc.framing import RawResponse


class IPCError(Exception):
    """Base class for all IPC client errors."""


class PreconditionError(IPCError):
    """An operation was invoked with missing or invalid inputs. No I/O was attempted."""


class InvalidStateError(PreconditionError):
    """An operation was invoked in the wrong lifecycle state."""


class IPCConnectionError(IPCError, ConnectionError):
    """The local endpoint could not be reached."""


class EndpointNotFoundError(IPCConnectionError):
    """No peer is listening on the requested endpoint."""


class ConnectTimeoutError(IPCConnectionError):
    """The endpoint exists but did not accept the connection in time."""


class TransportError(IPCError):
    """Reading from or writing to an open connection failed.

    The connection should be considered dead: disconnect and reconnect.
    """


class PeerClosedError(TransportError):
    """The peer closed the stream cleanly before sending a frame header."""


class TruncatedFrameError(TransportError):
    """The peer closed the stream part way through a frame."""

    def __init__(self, message: str, *, expected: int, received: int) -> None:
        super().__init__(message)
        self.expected = expected
        self.received = received


class TruncatedHeaderError(TruncatedFrameError):
    """Fewer than eight header bytes arrived before the stream closed."""


class TruncatedPayloadError(TruncatedFrameError):
    """Fewer payload bytes arrived than the header declared."""


class ReadTimeoutError(TransportError):
    """The peer did not reply before the read deadline."""


class ShortWriteError(TransportError):
    """The transport accepted only part of a frame."""


class ProtocolError(IPCError):
    """The peer sent a frame that violates the wire protocol."""


class UnexpectedOpcodeError(ProtocolError):
    """The reply carried an opcode that is not a response to a request."""

    def __init__(self, opcode: int) -> None:
        super().__init__(f"unexpected opcode {opcode} in reply")
        self.opcode = opcode


class PeerCloseError(ProtocolError):
    """The peer answered with a CLOSE frame and is dropping the connection."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"peer closed the connection: {message} (code {code})")
        self.code = code
        self.message = message


class DecodeError(IPCError):
    """A reply payload could not be read as a response object.

    The raw frame is kept on ``raw`` for diagnostics.
    """

    def __init__(self, message: str, raw: RawResponse) -> None:
        super().__init__(message)
        self.raw = raw


class EntropyExhaustedError(RuntimeError):
    """The operating system could not supply random bytes for a nonce.

    Not an :class:`IPCError`: handlers that recover from IPC failures must not
    catch it.
    """


__all__ = [
    "ConnectTimeoutError",
    "DecodeError",
    "EndpointNotFoundError",
    "EntropyExhaustedError",
    "IPCConnectionError",
    "IPCError",
    "InvalidStateError",
    "PeerCloseError",
    "PeerClosedError",
    "PreconditionError",
    "ProtocolError",
    "ReadTimeoutError",
    "ShortWriteError",
    "TransportError",
    "TruncatedFrameError",
    "TruncatedHeaderError",
    "TruncatedPayloadError",
    "UnexpectedOpcodeError",
]
