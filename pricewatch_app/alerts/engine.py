"""
Threshold crossing detection.

A crossing needs two observations: the very first price for an instrument
only seeds the cache and can never fire.
"""

from decimal import Decimal
from typing import Optional, Union

from ..data.models import Instrument
from ..logging.config import get_alert_logger, log_alert_fired
from .models import PriceAlert
from .registry import AlertRegistry

alert_logger = get_alert_logger(__name__)


class AlertEngine:
    """Evaluates enabled alerts against successive price observations."""

    def __init__(self, registry: AlertRegistry) -> None:
        self.registry = registry
        self.logger = alert_logger

    def evaluate(
        self,
        instrument: Union[str, Instrument],
        previous: Optional[Decimal],
        current: Decimal
    ) -> list[PriceAlert]:
        """
        Fire every enabled alert for the instrument crossed between two prices.

        Non-persistent alerts are disabled as they fire. Saving the alert set
        is left to the caller, once per returned batch.

        Args:
            instrument: Instrument the prices belong to
            previous: Prior observed price, None for the first observation
            current: Newly observed price

        Returns:
            Alerts that fired, in registry order
        """
        if previous is None:
            return []

        fired = []
        for alert in self.registry.enabled_for(instrument):
            if not alert.is_crossed(previous, current):
                continue
            if not alert.persistent:
                alert.enabled = False
            fired.append(alert)
            log_alert_fired(
                self.logger,
                alert_id=alert.id,
                instrument=alert.instrument.symbol,
                target_price=str(alert.target_price),
                price=str(current),
                persistent=alert.persistent,
                context={"previous_price": str(previous)}
            )

        return fired
