"""IPC client that connects to a local Discord client and sends commands."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from tidalcord.ipc.constants import DEFAULT_CONNECT_TIMEOUT, DEFAULT_INSTANCE, SET_ACTIVITY
from tidalcord.ipc.contracts import ActivityArguments, CloseFrame, CommandFrame, Handshake
from tidalcord.ipc.errors import (
    DecodeError,
    InvalidStateError,
    PeerCloseError,
    PreconditionError,
    ProtocolError,
    TransportError,
    UnexpectedOpcodeError,
)
from tidalcord.ipc.framing import Opcode, decode_frame, encode_frame, encode_json
from tidalcord.ipc.nonce import generate_nonce
from tidalcord.ipc.transports import DefaultTransport, endpoint_name

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from tidalcord.ipc.contracts import Activity, IPCResponse
    from tidalcord.ipc.framing import RawResponse
    from tidalcord.ipc.transports import Transport

logger = logging.getLogger(__name__)

_REPLY_OPCODES = frozenset({Opcode.HANDSHAKE, Opcode.FRAME})


class SessionState(Enum):
    """Lifecycle of an :class:`IPCClient`."""

    UNCONNECTED = "unconnected"
    CONNECTED = "connected"
    AUTHENTICATED = "authenticated"


class IPCClient:
    """Synchronous Discord IPC client.

    Every request is one blocking write followed by one blocking read of the
    matching reply. A lock serializes those exchanges, so sharing one client
    between threads is safe but gives no parallelism.

    Usage::

        client = IPCClient(version="1", client_id="1234")
        client.connect()
        ready = client.login()
        if ready.is_ready:
            client.set_activity(Activity(details="Song", state="by Artist"), pid=os.getpid())
        client.disconnect()

    Or as a context manager, which disconnects on exit::

        with IPCClient(version="1", client_id="1234") as client:
            client.connect()
            ...
    """

    def __init__(
        self,
        version: str,
        client_id: str,
        *,
        transport_factory: Callable[[], Transport] = DefaultTransport,
        read_timeout: float | None = None,
    ) -> None:
        self._version = version
        self._client_id = client_id
        self._transport_factory = transport_factory
        self._read_timeout = read_timeout
        self._transport: Transport | None = None
        self._state = SessionState.UNCONNECTED
        self._lock = threading.Lock()

    def __enter__(self) -> IPCClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.disconnect()

    @property
    def version(self) -> str:
        return self._version

    @property
    def client_id(self) -> str:
        return self._client_id

    @property
    def state(self) -> SessionState:
        return self._state

    def connect(
        self,
        instance: int = DEFAULT_INSTANCE,
        timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ) -> None:
        """Open a connection to the Discord client listening on *instance*.

        Connecting a client that is already connected is a caller mistake, not
        a network failure, so it raises :class:`InvalidStateError` without
        touching the open connection.

        Raises:
            InvalidStateError: If the client is already connected.
            IPCConnectionError: If the endpoint is missing or the dial timed out.
        """
        if self._state is not SessionState.UNCONNECTED:
            msg = f"connect() requires an unconnected client, state is {self._state.value}"
            raise InvalidStateError(msg)

        endpoint = endpoint_name(instance)
        transport = self._transport_factory()
        transport.connect(endpoint, timeout, read_timeout=self._read_timeout)

        self._transport = transport
        self._state = SessionState.CONNECTED
        logger.debug("IPC client connected: endpoint=%s", endpoint)

    def login(self) -> IPCResponse:
        """Perform the handshake and return the peer's reply.

        The client becomes authenticated whatever event the peer answers
        with; check :attr:`IPCResponse.is_ready` on the result.
        """
        if not self._version or not self._client_id:
            msg = "client version and client_id must both be set"
            raise PreconditionError(msg)
        if self._state is not SessionState.CONNECTED:
            msg = f"login() requires a connected client, state is {self._state.value}"
            raise InvalidStateError(msg)

        handshake = Handshake(v=self._version, client_id=self._client_id)
        response = self._exchange(Opcode.HANDSHAKE, handshake)
        self._state = SessionState.AUTHENTICATED
        logger.info("Handshake complete: evt=%s", response.evt or "<none>")
        return response

    def send_command(
        self,
        command: str,
        args: BaseModel | Mapping[str, Any] | None = None,
    ) -> IPCResponse:
        """Send *command* with *args* under a fresh nonce and return the reply."""
        if self._state is not SessionState.AUTHENTICATED:
            msg = f"send_command() requires a logged in client, state is {self._state.value}"
            raise InvalidStateError(msg)

        if args is None:
            arguments: dict[str, Any] = {}
        elif isinstance(args, BaseModel):
            arguments = args.model_dump(mode="json", exclude_none=True)
        else:
            arguments = dict(args)

        frame = CommandFrame(cmd=command, args=arguments, nonce=generate_nonce())
        return self._exchange(Opcode.FRAME, frame)

    def set_activity(self, activity: Activity, *, pid: int) -> IPCResponse:
        """Publish *activity* as the Rich Presence of process *pid*."""
        return self.send_command(SET_ACTIVITY, ActivityArguments(pid=pid, activity=activity))

    def clear_activity(self, *, pid: int) -> IPCResponse:
        """Remove the Rich Presence of process *pid*."""
        return self.send_command(SET_ACTIVITY, ActivityArguments(pid=pid))

    def disconnect(self) -> None:
        """Close the connection. Safe to call in any state, any number of times."""
        transport, self._transport = self._transport, None
        self._state = SessionState.UNCONNECTED
        if transport is not None:
            transport.close()
            logger.debug("IPC client disconnected")

    def _exchange(self, opcode: Opcode, payload: BaseModel) -> IPCResponse:
        """Write one frame and block for exactly one reply frame.

        A failed write or read leaves the stream at an unknown offset, so the
        transport is closed and every later exchange fails until the caller
        disconnects and connects again.
        """
        body = encode_json(payload)
        frame = encode_frame(opcode, body)
        with self._lock:
            transport = self._transport
            if transport is None:
                msg = "connection was dropped after an I/O failure; disconnect and reconnect"
                raise TransportError(msg)
            logger.debug("S: %s", body.decode("utf-8", errors="replace"))
            try:
                transport.write(frame)
                raw = decode_frame(transport)
            except (TransportError, ProtocolError) as exc:
                self._transport = None
                transport.close()
                logger.debug("IPC transport dropped: %s", exc)
                raise
        logger.debug(
            "R: %s opcode=%d",
            raw.payload.decode("utf-8", errors="replace"),
            raw.opcode,
        )
        return self._interpret(raw)

    @staticmethod
    def _interpret(raw: RawResponse) -> IPCResponse:
        kind = raw.kind
        if kind in _REPLY_OPCODES:
            return raw.parse()
        if kind is Opcode.CLOSE:
            try:
                close = raw.parse_as(CloseFrame)
            except DecodeError:
                close = CloseFrame()
            raise PeerCloseError(close.code, close.message)
        raise UnexpectedOpcodeError(raw.opcode)


__all__ = ["IPCClient", "SessionState"]
