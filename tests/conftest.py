"""Pytest fixtures for tidalcord tests."""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from hypothesis import Phase, Verbosity, settings

from tests.helpers.stub_peer import StubPeer

_TEST_BASE_DIR = Path(tempfile.mkdtemp(prefix="tidalcord-tests-"))
os.environ["TIDALCORD_CONFIG_DIR"] = str(_TEST_BASE_DIR / "config")

if TYPE_CHECKING:
    from collections.abc import Generator


settings.register_profile(
    "ci",
    max_examples=100,
    deadline=None,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
)
settings.register_profile(
    "dev",
    max_examples=20,
    deadline=500,
)
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))


@pytest.fixture(autouse=True)
def _clean_client_id_env(monkeypatch) -> None:
    """Keep a developer's real client id out of the tests."""
    monkeypatch.delenv("TIDALCORD_CLIENT_ID", raising=False)
    monkeypatch.delenv("CLIENT_ID", raising=False)


@pytest.fixture
def short_tmp() -> Generator[Path, None, None]:
    """Create a short temp directory for Unix socket paths (macOS 104-byte limit)."""
    d = tempfile.mkdtemp(prefix="tc-", dir="/tmp")
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def stub_peer(short_tmp: Path) -> Generator[StubPeer, None, None]:
    """A running stub Discord client listening as instance 0 in ``short_tmp``."""
    peer = StubPeer(short_tmp)
    peer.start()
    yield peer
    peer.stop()
