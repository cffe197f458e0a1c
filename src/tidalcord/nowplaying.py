"""Discover what the TIDAL desktop player is playing.

TIDAL puts "Song - Artist" in its window title while playing. On Windows the
only portable way to read another process's window title without extra
dependencies is the verbose CSV output of ``TASKLIST.EXE``.
"""

from __future__ import annotations

import csv
import io
import logging
import subprocess
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tidalcord.ipc.contracts import Activity, Assets

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

_NO_TITLE = "N/A"
_TASKLIST_TIMEOUT_SECONDS = 10.0


class NowPlayingError(Exception):
    """The process list could not be read."""


@dataclass(frozen=True, slots=True)
class NowPlaying:
    song: str
    artist: str

    def to_activity(self, artist_prefix: str = "by ") -> Activity:
        """Build an activity with every art slot explicitly cleared."""
        state = f"{artist_prefix}{self.artist}" if self.artist else ""
        return Activity(details=self.song, state=state, assets=Assets())


def window_title(
    image_name: str,
    *,
    run: Callable[..., subprocess.CompletedProcess[bytes]] = subprocess.run,
) -> str:
    """Return the first window title of a process named *image_name*.

    Returns an empty string when no matching process has a window title.

    Raises:
        NowPlayingError: If ``TASKLIST.EXE`` cannot be run or fails.
    """
    args = [
        "TASKLIST.EXE",
        "/FI",
        f"IMAGENAME eq {image_name}",
        "/FO",
        "CSV",
        "/V",
    ]
    try:
        result = run(args, capture_output=True, check=True, timeout=_TASKLIST_TIMEOUT_SECONDS)
    except (OSError, subprocess.SubprocessError) as exc:
        msg = f"could not list processes: {exc}"
        raise NowPlayingError(msg) from exc

    text = result.stdout.decode("utf-8", errors="replace")
    rows = list(csv.reader(io.StringIO(text)))
    # First row is the header; the window title is the last column.
    for row in rows[1:]:
        if not row:
            continue
        title = row[-1]
        if title != _NO_TITLE:
            return title
    return ""


def parse_title(title: str, separator: str = " - ") -> NowPlaying | None:
    """Split a "Song - Artist" window title, or return ``None`` if it is not one."""
    parts = title.split(separator)
    if len(parts) != 2:
        return None
    song, artist = parts
    return NowPlaying(song=song, artist=artist)


__all__ = ["NowPlaying", "NowPlayingError", "parse_title", "window_title"]
