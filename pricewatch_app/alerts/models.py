"""Price alert definition and its persisted record format."""

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from ..data.models import Instrument
from ..data.parsers import parse_decimal
from ..errors import MissingFieldError


@dataclass
class PriceAlert:
    """
    A user-defined price threshold on one instrument.

    Non-persistent alerts are one-shot: firing disables them. Persistent
    alerts stay enabled and fire on every later crossing.
    """
    instrument: Instrument
    target_price: Decimal
    enabled: bool = True
    persistent: bool = False
    play_sound: bool = True
    flash_widget: bool = True
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def is_crossed(self, previous: Decimal, current: Decimal) -> bool:
        """True if price moved onto or across the target between two observations."""
        target = self.target_price
        return (previous < target <= current) or (previous > target >= current)

    def to_dict(self) -> dict[str, Any]:
        """Flat JSON-serializable record."""
        return {
            "id": self.id,
            "symbol": self.instrument.symbol,
            "target_price": str(self.target_price),
            "enabled": self.enabled,
            "persistent": self.persistent,
            "play_sound": self.play_sound,
            "flash_widget": self.flash_widget,
        }

    @classmethod
    def from_dict(cls, record: dict[str, Any]) -> "PriceAlert":
        """
        Rebuild an alert from a persisted record.

        Raises:
            MissingFieldError: symbol or target price is missing or invalid
            InvalidInstrumentError: symbol is not a valid instrument
        """
        if "symbol" not in record:
            raise MissingFieldError("Alert record has no symbol", field="symbol")
        target = parse_decimal(record.get("target_price"))
        if target is None:
            raise MissingFieldError(
                f"Alert record has no valid target price: {record.get('target_price')!r}",
                field="target_price"
            )

        kwargs: dict[str, Any] = {
            "instrument": Instrument(record["symbol"]),
            "target_price": target,
            "enabled": bool(record.get("enabled", True)),
            "persistent": bool(record.get("persistent", False)),
            "play_sound": bool(record.get("play_sound", True)),
            "flash_widget": bool(record.get("flash_widget", True)),
        }
        if record.get("id"):
            kwargs["id"] = str(record["id"])
        return cls(**kwargs)
