"""tidalcord: show what TIDAL is playing as Discord Rich Presence."""

from tidalcord.ipc import Activity, Assets, IPCClient, IPCResponse, SessionState

__version__ = "0.1.0"

__all__ = ["Activity", "Assets", "IPCClient", "IPCResponse", "SessionState", "__version__"]
