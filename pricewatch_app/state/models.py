"""State enums for connections and the stream supervisor."""

from enum import Enum


class ConnectionState(str, Enum):
    """Lifecycle of the active instrument's streaming connection."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


class SupervisorState(str, Enum):
    """Supervisor lifecycle: IDLE -> STREAMING(instrument)* -> CLOSED."""
    IDLE = "idle"
    STREAMING = "streaming"
    CLOSED = "closed"
