"""A threaded stub of the Discord client's IPC endpoint, for smoke tests."""

from __future__ import annotations

import contextlib
import json
import socket
import struct
import threading
from typing import TYPE_CHECKING, Any

from tests.helpers.fakes import frame, ready_payload

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


class HangUp:
    """Handler result: send *data* (possibly a partial frame), then close the connection."""

    def __init__(self, data: bytes = b"") -> None:
        self.data = data


# Handler results: wire bytes to send, a HangUp, or None to stay silent.
CLOSE = HangUp()


def default_handler(opcode: int, payload: dict[str, Any]) -> bytes:
    """Answer a handshake with READY and echo every command back."""
    if opcode == 0:
        return frame(1, ready_payload())
    args = payload.get("args") or {}
    return frame(
        1,
        {
            "cmd": payload.get("cmd"),
            "data": args.get("activity"),
            "evt": None,
            "nonce": payload.get("nonce"),
        },
    )


def _recv_exactly(conn: socket.socket, size: int) -> bytes:
    chunks = []
    remaining = size
    while remaining:
        chunk = conn.recv(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


class StubPeer:
    """Listens on ``<directory>/discord-ipc-<instance>`` and serves one client at a time.

    Every frame received is recorded in ``received`` as (opcode, payload).
    """

    def __init__(
        self,
        directory: Path,
        instance: int = 0,
        handler: Callable[[int, dict[str, Any]], bytes | HangUp | None] = default_handler,
    ) -> None:
        self.directory = directory
        self.path = directory / f"discord-ipc-{instance}"
        self.handler = handler
        self.received: list[tuple[int, dict[str, Any]]] = []
        self._server: socket.socket | None = None
        self._thread: threading.Thread | None = None
        self._stopping = threading.Event()

    def start(self) -> None:
        server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        server.bind(str(self.path))
        server.listen(4)
        server.settimeout(0.1)
        self._server = server
        self._thread = threading.Thread(target=self._serve, name="stub-discord", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stopping.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
        if self._server is not None:
            self._server.close()
        with contextlib.suppress(FileNotFoundError):
            self.path.unlink()

    def _serve(self) -> None:
        assert self._server is not None
        while not self._stopping.is_set():
            try:
                conn, _ = self._server.accept()
            except TimeoutError:
                continue
            except OSError:
                return
            with conn:
                self._handle(conn)

    def _handle(self, conn: socket.socket) -> None:
        while not self._stopping.is_set():
            conn.settimeout(0.1)
            try:
                first = conn.recv(8)
            except TimeoutError:
                continue
            except OSError:
                return
            if not first:
                return
            conn.settimeout(5)
            header = first + _recv_exactly(conn, 8 - len(first))
            if len(header) < 8:
                return
            opcode, length = struct.unpack("<ii", header)
            body = _recv_exactly(conn, length)
            payload = json.loads(body)
            self.received.append((opcode, payload))

            reply = self.handler(opcode, payload)
            try:
                if isinstance(reply, HangUp):
                    if reply.data:
                        conn.sendall(reply.data)
                    return
                if isinstance(reply, bytes):
                    conn.sendall(reply)
            except OSError:
                # The client already gave up on this connection.
                return
