"""Explicit tracking session shared by the supervisor and its collaborators."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

import structlog

from ..alerts.registry import AlertRegistry
from ..data.instruments import InstrumentList
from ..data.models import Instrument
from ..errors import InvalidInstrumentError
from .cache import LastPriceCache

if TYPE_CHECKING:
    from ..persistence.json_store import JsonStateStore

logger = structlog.get_logger(__name__)


@dataclass
class TrackingSession:
    """Instrument list, alert registry and last price cache for one session."""

    instruments: InstrumentList = field(default_factory=InstrumentList)
    alerts: AlertRegistry = field(default_factory=AlertRegistry)
    prices: LastPriceCache = field(default_factory=LastPriceCache)

    @property
    def active_instrument(self) -> Optional[Instrument]:
        return self.instruments.current

    @classmethod
    def from_store(
        cls,
        store: "JsonStateStore",
        default_instruments: Iterable[str] = ()
    ) -> "TrackingSession":
        """Load persisted instruments and alerts, falling back to defaults."""
        symbols = store.load_instruments() or list(default_instruments)

        instruments = InstrumentList()
        for symbol in symbols:
            try:
                instruments.add(symbol)
            except InvalidInstrumentError as e:
                logger.warning("Skipping invalid stored symbol", symbol=symbol, error=str(e))

        alerts = AlertRegistry(store.load_alerts())

        logger.info(
            "Tracking session loaded",
            instruments=instruments.symbols(),
            alert_count=len(alerts)
        )
        return cls(instruments=instruments, alerts=alerts)
