"""
Canonical data models for instruments and price observations.

Prices are always ``decimal.Decimal`` so that threshold comparisons never
suffer from binary floating point rounding.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Union

from ..errors import InvalidInstrumentError


@dataclass(frozen=True)
class Instrument:
    """Case-insensitive tradable symbol identifier, e.g. ``btcusdt``."""
    symbol: str

    def __post_init__(self) -> None:
        if not isinstance(self.symbol, str):
            raise InvalidInstrumentError(
                f"Instrument symbol must be a string, got {type(self.symbol).__name__}",
                symbol=repr(self.symbol)
            )
        normalized = self.symbol.strip().lower()
        if not normalized or not normalized.isalnum() or not normalized.isascii():
            raise InvalidInstrumentError(
                f"Invalid instrument symbol: {self.symbol!r}",
                symbol=self.symbol
            )
        object.__setattr__(self, "symbol", normalized)

    @classmethod
    def of(cls, value: Union[str, "Instrument"]) -> "Instrument":
        """Coerce a symbol string or an Instrument into an Instrument."""
        if isinstance(value, Instrument):
            return value
        return cls(value)

    @property
    def exchange_symbol(self) -> str:
        """Upper-case form used by the REST API."""
        return self.symbol.upper()

    def __str__(self) -> str:
        return self.symbol


class ObservationSource(str, Enum):
    """Update path that produced an observation."""
    STREAM = "stream"
    POLL = "poll"


@dataclass(frozen=True)
class PriceObservation:
    """A single observed price for an instrument."""
    instrument: Instrument
    price: Decimal
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    source: ObservationSource = ObservationSource.STREAM
