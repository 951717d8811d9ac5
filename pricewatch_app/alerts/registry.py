"""In-memory owner of the alert collection."""

from collections.abc import Iterable, Iterator
from typing import Optional, Union

from ..data.models import Instrument
from .models import PriceAlert


class AlertRegistry:
    """
    Ordered collection of price alerts keyed by id.

    The registry itself does no locking; callers that mutate it from more
    than one task serialize through a single writer (see StreamSupervisor).
    """

    def __init__(self, alerts: Optional[Iterable[PriceAlert]] = None) -> None:
        self._alerts: list[PriceAlert] = list(alerts or ())

    def __len__(self) -> int:
        return len(self._alerts)

    def __iter__(self) -> Iterator[PriceAlert]:
        return iter(list(self._alerts))

    def get(self, alert_id: str) -> Optional[PriceAlert]:
        for alert in self._alerts:
            if alert.id == alert_id:
                return alert
        return None

    def add(self, alert: PriceAlert) -> PriceAlert:
        """Add an alert, replacing any existing alert with the same id."""
        self.remove(alert.id)
        self._alerts.append(alert)
        return alert

    def remove(self, alert_id: str) -> bool:
        before = len(self._alerts)
        self._alerts = [a for a in self._alerts if a.id != alert_id]
        return len(self._alerts) != before

    def set_enabled(self, alert_id: str, enabled: bool) -> bool:
        alert = self.get(alert_id)
        if alert is None:
            return False
        alert.enabled = enabled
        return True

    def enabled_for(self, instrument: Union[str, Instrument]) -> list[PriceAlert]:
        """Enabled alerts watching the given instrument."""
        target = Instrument.of(instrument)
        return [a for a in self._alerts if a.enabled and a.instrument == target]

    def enabled_instruments(self, exclude: Optional[Instrument] = None) -> list[Instrument]:
        """Distinct instruments with at least one enabled alert, in first-seen order."""
        seen: list[Instrument] = []
        for alert in self._alerts:
            if not alert.enabled or alert.instrument == exclude:
                continue
            if alert.instrument not in seen:
                seen.append(alert.instrument)
        return seen

    def snapshot(self) -> list[PriceAlert]:
        """Shallow copy of the alert list for persistence."""
        return list(self._alerts)
