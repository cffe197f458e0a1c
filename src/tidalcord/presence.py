"""Mirror the TIDAL player's now-playing state into Discord Rich Presence.

This is the caller-level policy around :class:`~tidalcord.ipc.IPCClient`:
the client makes one attempt per call and never retries, while the runner
retries connections, polls the player, and reconnects after a broken session.
"""

from __future__ import annotations

import functools
import logging
import os
import time
from typing import TYPE_CHECKING

from tidalcord.ipc.client import IPCClient
from tidalcord.ipc.errors import DecodeError, IPCConnectionError, ProtocolError, TransportError
from tidalcord.nowplaying import NowPlayingError, parse_title, window_title

if TYPE_CHECKING:
    from collections.abc import Callable

    from tidalcord.config import TidalcordConfig
    from tidalcord.ipc.contracts import IPCResponse

logger = logging.getLogger(__name__)

# Failures after which the session is dead and must be re-established.
SESSION_ERRORS = (TransportError, ProtocolError, DecodeError)


class HandshakeRejectedError(Exception):
    """Discord answered the handshake with something other than READY."""

    def __init__(self, event: str) -> None:
        super().__init__(f"handshake with Discord failed: evt={event or '<none>'}")
        self.event = event


class PresenceRunner:
    """Poll the player and push changes to Discord.

    Args:
        config: Loaded configuration.
        client: Client to use; built from *config* when omitted.
        title_source: Returns the player's current window title.
        sleep: Called with a delay in seconds between polls and retries.
        pid: Process id activities are attributed to (defaults to this process).
    """

    def __init__(
        self,
        config: TidalcordConfig,
        *,
        client: IPCClient | None = None,
        title_source: Callable[[], str] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        pid: int | None = None,
    ) -> None:
        self._config = config
        self._client = client or IPCClient(
            config.discord.protocol_version,
            config.discord.client_id,
            read_timeout=config.discord.read_timeout,
        )
        self._title_source = title_source or functools.partial(
            window_title, config.presence.process_name
        )
        self._sleep = sleep
        self._pid = pid if pid is not None else os.getpid()

    @property
    def client(self) -> IPCClient:
        return self._client

    def connect(self, max_attempts: int | None = None) -> None:
        """Connect to Discord, retrying every ``retry_interval`` seconds.

        Raises:
            IPCConnectionError: When *max_attempts* is exhausted.
        """
        discord = self._config.discord
        attempt = 0
        while True:
            attempt += 1
            logger.info("Attempting Discord connection ...")
            try:
                self._client.connect(discord.instance, discord.connect_timeout)
            except IPCConnectionError as exc:
                if max_attempts is not None and attempt >= max_attempts:
                    raise
                logger.warning("Error connecting to Discord. Is Discord running? %s", exc)
                self._sleep(self._config.presence.retry_interval)
                continue
            return

    def login(self) -> IPCResponse:
        """Complete the handshake, insisting on the READY event."""
        logger.info("Logging in to Discord ...")
        response = self._client.login()
        if not response.is_ready:
            self._client.disconnect()
            raise HandshakeRejectedError(response.evt)
        user = response.data.user
        if user is not None:
            logger.info("Logged in to Discord as %s", user.username)
        return response

    def start(self, max_attempts: int | None = None) -> IPCResponse:
        self.connect(max_attempts)
        return self.login()

    def tick(self, last_title: str) -> str:
        """Poll the player once and return the title to compare against next time."""
        try:
            title = self._title_source()
        except NowPlayingError as exc:
            logger.warning("Error getting TIDAL song: %s", exc)
            title = ""

        if not title:
            if last_title:
                # TIDAL stopped playing or was closed.
                self._report(self._client.clear_activity(pid=self._pid))
                logger.info("Playback stopped; presence cleared")
            return ""

        if title == last_title:
            return last_title

        now_playing = parse_title(title, self._config.presence.separator)
        if now_playing is not None:
            activity = now_playing.to_activity(self._config.presence.artist_prefix)
            self._report(self._client.set_activity(activity, pid=self._pid))
            logger.info("Now playing: %s - %s", now_playing.song, now_playing.artist)
        else:
            logger.debug("Ignoring window title %r", title)
        return title

    def reconnect(self) -> IPCResponse:
        """Drop the current session and start a new one, retrying until it logs in.

        A handshake that Discord answers with something other than READY is
        not retried.
        """
        while True:
            self._client.disconnect()
            try:
                return self.start()
            except SESSION_ERRORS as exc:
                logger.warning("Discord session could not be restored: %s", exc)
                self._sleep(self._config.presence.retry_interval)

    def run(self, max_ticks: int | None = None) -> None:
        """Run until interrupted, or for *max_ticks* polls."""
        self.start()
        last_title = ""
        ticks = 0
        try:
            while max_ticks is None or ticks < max_ticks:
                try:
                    last_title = self.tick(last_title)
                except SESSION_ERRORS as exc:
                    logger.warning("Lost Discord session: %s; reconnecting", exc)
                    self.reconnect()
                    last_title = ""
                ticks += 1
                if max_ticks is None or ticks < max_ticks:
                    self._sleep(self._config.presence.poll_interval)
        finally:
            self._client.disconnect()

    @staticmethod
    def _report(response: IPCResponse) -> None:
        if response.is_error:
            logger.warning(
                "Discord rejected %s: %s (code %s)",
                response.cmd,
                response.data.message,
                response.data.code,
            )


__all__ = ["SESSION_ERRORS", "HandshakeRejectedError", "PresenceRunner"]
