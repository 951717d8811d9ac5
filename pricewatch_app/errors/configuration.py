"""
Configuration and persistence error classifications.

Invalid configuration at the supervisor surface is a no-op that preserves
the previous state; persistence failures are logged and absorbed.
"""

from typing import Any, Dict, Optional

from .recovery import GracefulDegradationError


class InvalidConfigurationError(Exception):
    """Requested operation or configuration is not valid in the current state."""

    def __init__(self, message: str, field: Optional[str] = None,
                 value: Any = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.field = field
        self.value = value
        self.context = context or {}


class InvalidInstrumentError(InvalidConfigurationError):
    """Instrument symbol is empty or contains unsupported characters."""

    def __init__(self, message: str, symbol: Optional[str] = None, **kwargs):
        super().__init__(message, field="symbol", value=symbol, **kwargs)
        self.symbol = symbol


class PersistenceError(GracefulDegradationError):
    """File system persistence failures; tracking continues unsaved."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 target: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, degraded_functionality="persistence",
                         fallback="keep in-memory state")
        self.operation = operation
        self.target = target
        self.context = context or {}
