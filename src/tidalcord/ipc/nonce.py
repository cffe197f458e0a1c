"""Request nonces."""

from __future__ import annotations

import secrets

from tidalcord.ipc.constants import NONCE_SIZE
from tidalcord.ipc.errors import EntropyExhaustedError


def generate_nonce() -> bytes:
    """Return ``NONCE_SIZE`` bytes from the OS CSPRNG.

    Raises:
        EntropyExhaustedError: If the random source is unavailable.
    """
    try:
        nonce = secrets.token_bytes(NONCE_SIZE)
    except (OSError, NotImplementedError) as exc:
        msg = "operating system random source is unavailable"
        raise EntropyExhaustedError(msg) from exc
    if len(nonce) != NONCE_SIZE:
        msg = f"random source returned {len(nonce)} bytes, expected {NONCE_SIZE}"
        raise EntropyExhaustedError(msg)
    return nonce


__all__ = ["generate_nonce"]
