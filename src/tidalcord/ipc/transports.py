"""IPC transport implementations for talking to a local Discord client.

Provides Unix domain socket transport on POSIX and named pipe transport on
Windows. ``DefaultTransport`` is automatically set to the right choice for the
current platform.

Transports move raw bytes only. Framing lives in :mod:`tidalcord.ipc.framing`.
"""

from __future__ import annotations

import contextlib
import logging
import platform
import socket
import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, Protocol

from tidalcord.ipc.constants import ENDPOINT_PREFIX, PIPE_ROOT
from tidalcord.ipc.errors import (
    ConnectTimeoutError,
    EndpointNotFoundError,
    IPCConnectionError,
    PreconditionError,
    ReadTimeoutError,
    ShortWriteError,
    TransportError,
)
from tidalcord.paths import get_ipc_socket_dir

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


def endpoint_name(instance: int) -> str:
    """Return the well-known endpoint name for a Discord client instance."""
    if instance < 0:
        msg = f"instance index must be non-negative, got {instance}"
        raise PreconditionError(msg)
    return f"{ENDPOINT_PREFIX}{instance}"


class Transport(Protocol):
    """One bidirectional, ordered byte stream to the peer."""

    @property
    def is_open(self) -> bool: ...

    def connect(
        self,
        endpoint: str,
        timeout: float,
        read_timeout: float | None = None,
    ) -> None: ...

    def read(self, size: int) -> bytes: ...

    def write(self, data: bytes) -> None: ...

    def close(self) -> None: ...


# ---------------------------------------------------------------------------
# Unix socket transport
# ---------------------------------------------------------------------------


class UnixSocketTransport:
    """IPC transport over Unix domain sockets.

    Only available on macOS and Linux. On Windows this class raises
    ``NotImplementedError`` at construction time.
    """

    def __init__(self, directory: str | Path | None = None) -> None:
        if platform.system() == "Windows":
            msg = "Unix sockets are not supported on Windows"
            raise NotImplementedError(msg)
        self._directory = Path(directory) if directory is not None else None
        self._sock: socket.socket | None = None

    @property
    def is_open(self) -> bool:
        return self._sock is not None

    def path_for(self, endpoint: str) -> str:
        """Return the socket file path for *endpoint*."""
        directory = self._directory if self._directory is not None else get_ipc_socket_dir()
        return str(directory / endpoint)

    def connect(
        self,
        endpoint: str,
        timeout: float,
        read_timeout: float | None = None,
    ) -> None:
        """Dial the socket for *endpoint*, giving up after *timeout* seconds.

        Once connected, reads block for at most *read_timeout* seconds
        (``None`` blocks indefinitely).
        """
        if self._sock is not None:
            msg = "transport is already open"
            raise TransportError(msg)

        path = self.path_for(endpoint)
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(timeout)
        try:
            sock.connect(path)
        except TimeoutError as exc:
            sock.close()
            msg = f"timed out after {timeout}s connecting to {path}"
            raise ConnectTimeoutError(msg) from exc
        except (FileNotFoundError, ConnectionRefusedError) as exc:
            sock.close()
            msg = f"no IPC endpoint listening at {path}"
            raise EndpointNotFoundError(msg) from exc
        except OSError as exc:
            sock.close()
            msg = f"could not connect to {path}: {exc}"
            raise IPCConnectionError(msg) from exc

        sock.settimeout(read_timeout)
        self._sock = sock
        logger.debug("Connected to Unix socket at %s", path)

    def read(self, size: int) -> bytes:
        sock = self._require_open()
        try:
            return sock.recv(size)
        except TimeoutError as exc:
            msg = f"no reply within {sock.gettimeout()}s"
            raise ReadTimeoutError(msg) from exc
        except OSError as exc:
            msg = f"read failed: {exc}"
            raise TransportError(msg) from exc

    def write(self, data: bytes) -> None:
        sock = self._require_open()
        try:
            sock.sendall(data)
        except TimeoutError as exc:
            msg = f"write of {len(data)} bytes timed out"
            raise ShortWriteError(msg) from exc
        except OSError as exc:
            msg = f"write failed: {exc}"
            raise TransportError(msg) from exc

    def close(self) -> None:
        if self._sock is None:
            return
        with contextlib.suppress(OSError):
            self._sock.close()
        self._sock = None
        logger.debug("Unix socket transport closed")

    def _require_open(self) -> socket.socket:
        if self._sock is None:
            msg = "transport is not open"
            raise TransportError(msg)
        return self._sock


# ---------------------------------------------------------------------------
# Windows named pipe transport
# ---------------------------------------------------------------------------

_ERROR_PIPE_BUSY = 231
_PIPE_BUSY_RETRY_SECONDS = 0.05


class NamedPipeTransport:
    """IPC transport over a Windows named pipe.

    The pipe is opened as an unbuffered binary file. Named pipes opened this
    way cannot carry a read deadline, so ``read_timeout`` is ignored.
    """

    def __init__(self, opener: Callable[[str], BinaryIO] | None = None) -> None:
        self._opener = opener or _open_pipe
        self._pipe: BinaryIO | None = None

    @property
    def is_open(self) -> bool:
        return self._pipe is not None

    @staticmethod
    def path_for(endpoint: str) -> str:
        return PIPE_ROOT + endpoint

    def connect(
        self,
        endpoint: str,
        timeout: float,
        read_timeout: float | None = None,
    ) -> None:
        """Open the pipe for *endpoint*, waiting up to *timeout* while it is busy."""
        if self._pipe is not None:
            msg = "transport is already open"
            raise TransportError(msg)
        if read_timeout is not None:
            logger.debug("Read deadlines are not supported on named pipes; ignoring")

        path = self.path_for(endpoint)
        deadline = time.monotonic() + timeout
        while True:
            try:
                self._pipe = self._opener(path)
                break
            except FileNotFoundError as exc:
                msg = f"no IPC endpoint listening at {path}"
                raise EndpointNotFoundError(msg) from exc
            except OSError as exc:
                if getattr(exc, "winerror", None) != _ERROR_PIPE_BUSY:
                    msg = f"could not connect to {path}: {exc}"
                    raise IPCConnectionError(msg) from exc
                if time.monotonic() >= deadline:
                    msg = f"timed out after {timeout}s waiting for busy pipe {path}"
                    raise ConnectTimeoutError(msg) from exc
                time.sleep(_PIPE_BUSY_RETRY_SECONDS)
        logger.debug("Connected to named pipe at %s", path)

    def read(self, size: int) -> bytes:
        pipe = self._require_open()
        try:
            return pipe.read(size) or b""
        except BrokenPipeError:
            # The server end went away; report it as end of stream.
            return b""
        except OSError as exc:
            msg = f"read failed: {exc}"
            raise TransportError(msg) from exc

    def write(self, data: bytes) -> None:
        pipe = self._require_open()
        try:
            written = pipe.write(data)
        except OSError as exc:
            msg = f"write failed: {exc}"
            raise TransportError(msg) from exc
        if written != len(data):
            msg = f"wrote {written} of {len(data)} bytes"
            raise ShortWriteError(msg)

    def close(self) -> None:
        if self._pipe is None:
            return
        with contextlib.suppress(OSError):
            self._pipe.close()
        self._pipe = None
        logger.debug("Named pipe transport closed")

    def _require_open(self) -> BinaryIO:
        if self._pipe is None:
            msg = "transport is not open"
            raise TransportError(msg)
        return self._pipe


def _open_pipe(path: str) -> BinaryIO:
    return open(path, "r+b", buffering=0)  # noqa: SIM115


# ---------------------------------------------------------------------------
# Default transport selection
# ---------------------------------------------------------------------------

if sys.platform == "win32":
    DefaultTransport: type[UnixSocketTransport] | type[NamedPipeTransport] = NamedPipeTransport
else:
    DefaultTransport = UnixSocketTransport

__all__ = [
    "DefaultTransport",
    "NamedPipeTransport",
    "Transport",
    "UnixSocketTransport",
    "endpoint_name",
]
