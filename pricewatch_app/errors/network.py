"""
Transient network error classifications.

Connect, receive and fetch failures are never fatal: the stream retries on
a fixed schedule and snapshot callers wait for their next tick.
"""

from typing import Any, Dict, Optional

from .recovery import RecoverableError


class TransientNetworkError(RecoverableError):
    """Base class for connect, receive and fetch failures."""

    def __init__(self, message: str, instrument: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.instrument = instrument
        self.context = context or {}


class FeedConnectionError(TransientNetworkError):
    """Streaming connection could not be opened or was lost."""

    def __init__(self, message: str, url: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.url = url


class SnapshotFetchError(TransientNetworkError):
    """A request/response snapshot call failed."""

    def __init__(self, message: str, endpoint: Optional[str] = None,
                 status: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.endpoint = endpoint
        self.status = status
