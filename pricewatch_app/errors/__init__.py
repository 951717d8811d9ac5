"""
Error classification system for the live price tracking engine.

Three categories cover everything the core can run into: transient network
failures (retried on schedule), malformed payloads (dropped) and invalid
configuration (no-op). None of them is fatal.
"""

from .configuration import (
    InvalidConfigurationError,
    InvalidInstrumentError,
    PersistenceError,
)
from .data_quality import (
    DataQualityError,
    MalformedPayloadError,
    MissingFieldError,
)
from .network import (
    FeedConnectionError,
    SnapshotFetchError,
    TransientNetworkError,
)
from .recovery import (
    GracefulDegradationError,
    RecoverableError,
)

__all__ = [
    # Data Quality Errors
    "DataQualityError",
    "MalformedPayloadError",
    "MissingFieldError",
    # Transient Network Errors
    "TransientNetworkError",
    "FeedConnectionError",
    "SnapshotFetchError",
    # Configuration / Persistence
    "InvalidConfigurationError",
    "InvalidInstrumentError",
    "PersistenceError",
    # Recovery Categories
    "RecoverableError",
    "GracefulDegradationError",
]
