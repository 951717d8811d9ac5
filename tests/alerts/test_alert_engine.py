"""Tests for threshold crossing detection."""

from decimal import Decimal

import pytest

from pricewatch_app.alerts.engine import AlertEngine
from pricewatch_app.alerts.models import PriceAlert
from pricewatch_app.alerts.registry import AlertRegistry
from pricewatch_app.data.models import Instrument

BTC = Instrument("btcusdt")
ETH = Instrument("ethusdt")


def make_engine(*alerts: PriceAlert) -> AlertEngine:
    return AlertEngine(AlertRegistry(alerts))


def d(value: str) -> Decimal:
    return Decimal(value)


class TestCrossingDetection:
    """Crossing predicate in both directions."""

    @pytest.mark.parametrize("previous,current", [
        ("49500", "50200"),   # upward through the target
        ("49999.99", "50000"),  # upward onto the target
        ("50500", "49800"),   # downward through the target
        ("50000.01", "50000"),  # downward onto the target
    ])
    def test_fires_on_crossing(self, previous, current):
        alert = PriceAlert(instrument=BTC, target_price=d("50000"))
        engine = make_engine(alert)

        fired = engine.evaluate(BTC, d(previous), d(current))

        assert fired == [alert]

    @pytest.mark.parametrize("previous,current", [
        ("49000", "49500"),   # below, stays below
        ("51000", "50500"),   # above, stays above
        ("50000", "50000"),   # sitting on the target
        ("50000", "50100"),   # leaving the target upward
        ("50000", "49900"),   # leaving the target downward
    ])
    def test_does_not_fire_without_crossing(self, previous, current):
        engine = make_engine(PriceAlert(instrument=BTC, target_price=d("50000")))

        assert engine.evaluate(BTC, d(previous), d(current)) == []

    def test_first_observation_never_fires(self):
        alert = PriceAlert(instrument=BTC, target_price=d("50000"))
        engine = make_engine(alert)

        assert engine.evaluate(BTC, None, d("50000")) == []
        assert alert.enabled is True

    def test_only_matching_instrument_evaluated(self):
        eth_alert = PriceAlert(instrument=ETH, target_price=d("50000"))
        engine = make_engine(eth_alert)

        assert engine.evaluate(BTC, d("49000"), d("51000")) == []

    def test_instrument_matched_case_insensitively(self):
        alert = PriceAlert(instrument=BTC, target_price=d("50000"))
        engine = make_engine(alert)

        assert engine.evaluate("BTCUSDT", d("49000"), d("51000")) == [alert]


class TestAlertLifecycle:
    """One-shot and persistent behavior."""

    def test_one_shot_alert_disables_after_firing(self):
        """BTCUSDT 50000 one-shot: 49500 -> 50200 fires, then 49000 does not."""
        alert = PriceAlert(instrument=BTC, target_price=d("50000"))
        engine = make_engine(alert)

        fired = engine.evaluate(BTC, d("49500"), d("50200"))
        assert fired == [alert]
        assert alert.enabled is False

        assert engine.evaluate(BTC, d("50200"), d("49000")) == []

    def test_re_enabled_alert_fires_again(self):
        alert = PriceAlert(instrument=BTC, target_price=d("50000"))
        registry = AlertRegistry([alert])
        engine = AlertEngine(registry)

        engine.evaluate(BTC, d("49500"), d("50200"))
        registry.set_enabled(alert.id, True)

        assert engine.evaluate(BTC, d("50200"), d("49000")) == [alert]

    def test_disabled_alert_never_fires(self):
        alert = PriceAlert(instrument=BTC, target_price=d("50000"), enabled=False)
        engine = make_engine(alert)

        assert engine.evaluate(BTC, d("49500"), d("50200")) == []

    def test_persistent_alert_fires_on_every_crossing(self):
        alert = PriceAlert(instrument=BTC, target_price=d("50000"), persistent=True)
        engine = make_engine(alert)

        prices = ["49500", "50200", "49000", "50001", "50002"]
        firings = [
            engine.evaluate(BTC, d(prev), d(curr))
            for prev, curr in zip(prices, prices[1:])
        ]

        assert [len(f) for f in firings] == [1, 1, 1, 0]
        assert alert.enabled is True

    def test_batch_returns_every_crossed_alert_in_order(self):
        low = PriceAlert(instrument=BTC, target_price=d("49800"), id="low")
        high = PriceAlert(instrument=BTC, target_price=d("50100"), id="high")
        untouched = PriceAlert(instrument=BTC, target_price=d("52000"), id="far")
        engine = make_engine(low, high, untouched)

        fired = engine.evaluate(BTC, d("49500"), d("50200"))

        assert [a.id for a in fired] == ["low", "high"]
        assert untouched.enabled is True
