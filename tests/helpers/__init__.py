"""Test helpers package."""

from tests.helpers.fakes import FakeTransport, frame, ready_payload
from tests.helpers.stub_peer import CLOSE, HangUp, StubPeer

__all__ = ["CLOSE", "FakeTransport", "HangUp", "StubPeer", "frame", "ready_payload"]
