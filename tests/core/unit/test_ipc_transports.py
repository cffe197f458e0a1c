from __future__ import annotations

import io
import socket
import sys
from pathlib import Path

import pytest

from tidalcord.ipc.errors import (
    ConnectTimeoutError,
    EndpointNotFoundError,
    IPCConnectionError,
    PreconditionError,
    ReadTimeoutError,
    ShortWriteError,
    TransportError,
)
from tidalcord.ipc.transports import NamedPipeTransport, UnixSocketTransport, endpoint_name
from tidalcord.paths import get_ipc_socket_dir

unix_only = pytest.mark.skipif(
    sys.platform == "win32", reason="Unix sockets unavailable on Windows"
)


def test_endpoint_name_appends_instance() -> None:
    assert endpoint_name(0) == "discord-ipc-0"
    assert endpoint_name(9) == "discord-ipc-9"


def test_endpoint_name_rejects_negative_instance() -> None:
    with pytest.raises(PreconditionError):
        endpoint_name(-1)


def test_ipc_socket_dir_prefers_xdg_runtime_dir(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_RUNTIME_DIR", str(tmp_path / "run"))
    monkeypatch.setenv("TMPDIR", str(tmp_path / "tmp"))

    assert get_ipc_socket_dir() == tmp_path / "run"


def test_ipc_socket_dir_falls_back_to_tmp(monkeypatch) -> None:
    for name in ("XDG_RUNTIME_DIR", "TMPDIR", "TMP", "TEMP"):
        monkeypatch.delenv(name, raising=False)

    assert get_ipc_socket_dir() == Path("/tmp")


@unix_only
def test_unix_path_uses_socket_dir(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_RUNTIME_DIR", str(tmp_path))

    assert UnixSocketTransport().path_for("discord-ipc-0") == str(tmp_path / "discord-ipc-0")
    assert UnixSocketTransport("/x").path_for("discord-ipc-1") == "/x/discord-ipc-1"


@unix_only
def test_unix_connect_to_missing_socket(short_tmp: Path) -> None:
    transport = UnixSocketTransport(short_tmp)

    with pytest.raises(EndpointNotFoundError):
        transport.connect("discord-ipc-0", timeout=0.5)

    assert not transport.is_open


@unix_only
def test_unix_read_deadline_raises_timeout(short_tmp: Path) -> None:
    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as server:
        server.bind(str(short_tmp / "discord-ipc-0"))
        server.listen(1)
        transport = UnixSocketTransport(short_tmp)
        transport.connect("discord-ipc-0", timeout=1.0, read_timeout=0.05)
        try:
            with pytest.raises(ReadTimeoutError):
                transport.read(8)
        finally:
            transport.close()


@unix_only
def test_unix_round_trip_and_peer_close(short_tmp: Path) -> None:
    with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as server:
        server.bind(str(short_tmp / "discord-ipc-2"))
        server.listen(1)
        transport = UnixSocketTransport(short_tmp)
        transport.connect("discord-ipc-2", timeout=1.0, read_timeout=1.0)
        conn, _ = server.accept()
        with conn:
            transport.write(b"ping")
            assert conn.recv(4) == b"ping"
            conn.sendall(b"pong")
            assert transport.read(4) == b"pong"
        assert transport.read(4) == b""
        transport.close()


@unix_only
def test_unix_io_requires_open_transport(short_tmp: Path) -> None:
    transport = UnixSocketTransport(short_tmp)

    with pytest.raises(TransportError):
        transport.read(8)
    with pytest.raises(TransportError):
        transport.write(b"x")
    transport.close()
    transport.close()


class _FakePipe(io.BytesIO):
    def __init__(self, data: bytes = b"", *, accept: int | None = None) -> None:
        super().__init__(data)
        self._accept = accept

    def write(self, data) -> int:
        if self._accept is not None:
            return self._accept
        return super().write(data)


class _PipeBusy(OSError):
    winerror = 231


def test_named_pipe_path() -> None:
    assert NamedPipeTransport.path_for("discord-ipc-0") == "\\\\.\\pipe\\discord-ipc-0"


def test_named_pipe_missing_endpoint() -> None:
    def _opener(path: str):
        raise FileNotFoundError(path)

    with pytest.raises(EndpointNotFoundError):
        NamedPipeTransport(_opener).connect("discord-ipc-0", timeout=0.1)


def test_named_pipe_busy_until_deadline() -> None:
    def _opener(path: str):
        raise _PipeBusy("All pipe instances are busy")

    with pytest.raises(ConnectTimeoutError):
        NamedPipeTransport(_opener).connect("discord-ipc-0", timeout=0.1)


def test_named_pipe_busy_then_available() -> None:
    attempts = []

    def _opener(path: str):
        attempts.append(path)
        if len(attempts) < 3:
            raise _PipeBusy("busy")
        return _FakePipe(b"reply")

    transport = NamedPipeTransport(_opener)
    transport.connect("discord-ipc-0", timeout=5.0)

    assert transport.is_open
    assert transport.read(5) == b"reply"
    assert len(attempts) == 3


def test_named_pipe_other_open_failure() -> None:
    def _opener(path: str):
        raise PermissionError(path)

    with pytest.raises(IPCConnectionError):
        NamedPipeTransport(_opener).connect("discord-ipc-0", timeout=0.1)


def test_named_pipe_partial_write_is_fatal() -> None:
    transport = NamedPipeTransport(lambda path: _FakePipe(accept=3))
    transport.connect("discord-ipc-0", timeout=0.1)

    with pytest.raises(ShortWriteError):
        transport.write(b"0123456789")


def test_named_pipe_broken_pipe_reads_as_end_of_stream() -> None:
    class _Broken(_FakePipe):
        def read(self, size=-1) -> bytes:
            raise BrokenPipeError

    transport = NamedPipeTransport(lambda path: _Broken())
    transport.connect("discord-ipc-0", timeout=0.1)

    assert transport.read(8) == b""
    transport.close()
    assert not transport.is_open
