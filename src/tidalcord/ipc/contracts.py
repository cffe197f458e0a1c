"""Payload contract types for Discord IPC communication."""

from __future__ import annotations

import base64
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from tidalcord.ipc.constants import ASSET_NONE, ERROR_EVENT, READY_EVENT


class Handshake(BaseModel):
    """First payload on a fresh connection (opcode HANDSHAKE)."""

    model_config = ConfigDict(frozen=True)

    v: str = Field(description="Protocol version")
    client_id: str = Field(description="Application identifier registered with Discord")


class Assets(BaseModel):
    """Art slots of a Rich Presence activity.

    Every key is always sent. A slot set to ``"none"`` is explicitly cleared.
    """

    large_image: str = ASSET_NONE
    large_text: str = ASSET_NONE
    small_image: str = ASSET_NONE
    small_text: str = ASSET_NONE


class Activity(BaseModel):
    """What the user is currently doing, as shown on their profile."""

    details: str = ""
    state: str = ""
    assets: Assets = Field(default_factory=Assets)


class ActivityArguments(BaseModel):
    """``args`` of a ``SET_ACTIVITY`` command.

    A ``None`` activity is left out of the payload, which clears presence.
    """

    pid: int = Field(description="Process id the activity is attributed to")
    activity: Activity | None = None


class CommandFrame(BaseModel):
    """Payload of one outbound command (opcode FRAME)."""

    cmd: str
    args: dict[str, Any] = Field(default_factory=dict)
    nonce: bytes

    @field_serializer("nonce")
    def _serialize_nonce(self, nonce: bytes) -> str:
        return base64.b64encode(nonce).decode("ascii")


class ResponseConfig(BaseModel):
    cdn_host: str = ""
    api_endpoint: str = ""
    environment: str = ""


class ResponseUser(BaseModel):
    id: str = ""
    username: str = ""
    discriminator: str = ""
    avatar: str | None = None
    bot: bool = False
    flags: int = 0
    premium_type: int = 0


class ResponseData(BaseModel):
    """``data`` block of a response; its shape depends on ``cmd``/``evt``.

    Keys not modelled here are kept as extra attributes.
    """

    model_config = ConfigDict(extra="allow")

    config: ResponseConfig | None = None
    user: ResponseUser | None = None
    code: int | None = None
    message: str | None = None


class IPCResponse(BaseModel):
    """Generic response payload from the peer."""

    v: str = ""
    cmd: str = ""
    data: ResponseData = Field(default_factory=ResponseData)
    evt: str = ""
    nonce: str = ""

    @field_validator("v", "cmd", "evt", "nonce", mode="before")
    @classmethod
    def _null_as_empty(cls, value: object) -> object:
        if value is None:
            return ""
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("data", mode="before")
    @classmethod
    def _null_data(cls, value: object) -> object:
        return {} if value is None else value

    @property
    def is_ready(self) -> bool:
        """Whether this is the readiness signal that completes a handshake."""
        return self.evt == READY_EVENT

    @property
    def is_error(self) -> bool:
        return self.evt == ERROR_EVENT


class CloseFrame(BaseModel):
    """Payload of a CLOSE frame sent by the peer before it drops the connection."""

    code: int = 0
    message: str = ""


__all__ = [
    "Activity",
    "ActivityArguments",
    "Assets",
    "CloseFrame",
    "CommandFrame",
    "Handshake",
    "IPCResponse",
    "ResponseConfig",
    "ResponseData",
    "ResponseUser",
]
