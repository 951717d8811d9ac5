"""Events exposed to presentation and notification collaborators."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from ..alerts.models import PriceAlert
from ..data.models import Instrument
from ..state.models import ConnectionState
from ..utils.formatting import format_label, format_price


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ConnectionStateChanged:
    """Streaming connection for the active instrument changed state."""
    instrument: Instrument
    state: ConnectionState
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class PriceUpdate:
    """Throttled live price for the active instrument."""
    instrument: Instrument
    price: Decimal
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class ChangePercentUpdate:
    """24h change percentage for the active instrument."""
    instrument: Instrument
    change_percent: Decimal
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class RecentClosesUpdate:
    """Chronological recent closing prices for the active instrument."""
    instrument: Instrument
    closes: tuple[Decimal, ...]
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class AlertFired:
    """An alert fired on a crossing observation."""
    alert: PriceAlert
    price: Decimal
    previous_price: Optional[Decimal] = None
    timestamp: datetime = field(default_factory=_now)

    @property
    def direction(self) -> str:
        """Side the price crossed from: ``up`` when it started below the target."""
        previous = self.previous_price
        return "up" if previous is not None and previous < self.alert.target_price else "down"

    @property
    def message(self) -> str:
        return (
            f"{format_label(self.alert.instrument.symbol)} crossed "
            f"{format_price(self.alert.target_price)} (now {format_price(self.price)})"
        )

    def to_dict(self) -> dict:
        """JSON-serializable record for notification sinks."""
        return {
            "alert_id": self.alert.id,
            "symbol": self.alert.instrument.symbol,
            "target_price": str(self.alert.target_price),
            "price": str(self.price),
            "previous_price": str(self.previous_price) if self.previous_price is not None else None,
            "direction": self.direction,
            "persistent": self.alert.persistent,
            "play_sound": self.alert.play_sound,
            "flash_widget": self.alert.flash_widget,
            "timestamp": self.timestamp.isoformat(),
            "message": self.message,
        }
