from __future__ import annotations

import pytest

from tidalcord.ipc.errors import EntropyExhaustedError, IPCError
from tidalcord.ipc.nonce import generate_nonce


def test_generate_nonce_has_fixed_length() -> None:
    assert len(generate_nonce()) == 12


def test_generate_nonce_does_not_repeat() -> None:
    nonces = [generate_nonce() for _ in range(1000)]

    assert all(len(nonce) == 12 for nonce in nonces)
    assert len(set(nonces)) == len(nonces)


def test_generate_nonce_aborts_without_entropy(monkeypatch) -> None:
    def _no_entropy(_size: int) -> bytes:
        raise OSError("getrandom failed")

    monkeypatch.setattr("tidalcord.ipc.nonce.secrets.token_bytes", _no_entropy)

    with pytest.raises(EntropyExhaustedError) as excinfo:
        generate_nonce()

    assert not isinstance(excinfo.value, IPCError)


def test_generate_nonce_rejects_short_output(monkeypatch) -> None:
    monkeypatch.setattr("tidalcord.ipc.nonce.secrets.token_bytes", lambda _size: b"")

    with pytest.raises(EntropyExhaustedError):
        generate_nonce()
