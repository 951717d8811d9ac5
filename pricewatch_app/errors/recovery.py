"""
How the engine recovers from a failure.

A recoverable failure is retried on the next scheduled attempt (reconnect
delay or next polling tick). A degraded failure leaves tracking running
with one capability missing, e.g. state that is no longer saved to disk.
"""

from typing import Optional


class RecoverableError(Exception):
    """Failure that the next scheduled attempt may clear."""

    def __init__(self, message: str, retry_in_seconds: Optional[float] = None, **kwargs):
        super().__init__(message)
        self.retry_in_seconds = retry_in_seconds
        self.recoverable = True


class GracefulDegradationError(Exception):
    """Failure that disables one capability while tracking continues."""

    def __init__(self, message: str, degraded_functionality: Optional[str] = None,
                 fallback: Optional[str] = None, **kwargs):
        super().__init__(message)
        self.degraded_functionality = degraded_functionality
        self.fallback = fallback
        self.allows_degradation = True
