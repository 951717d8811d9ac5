"""
Integration tests for background alert polling.

Alerts on instruments other than the streamed one are evaluated from
periodic snapshots, sharing the last price cache with the stream path.
"""

import asyncio
from dataclasses import replace
from decimal import Decimal

import pytest

from pricewatch_app.alerts.models import PriceAlert
from pricewatch_app.config.defaults import TimingParams
from pricewatch_app.data.models import Instrument, ObservationSource, PriceObservation
from pricewatch_app.persistence.json_store import JsonStateStore
from pricewatch_app.utils.cancellation import CancellationToken

BTC = Instrument("btcusdt")
ETH = Instrument("ethusdt")
SOL = Instrument("solusdt")


class TestAlertPolling:

    @pytest.mark.asyncio
    async def test_inactive_instrument_alert_fires_from_polling(self, make_supervisor, stub_fetcher):
        """ETHUSDT alert fires from polling while BTCUSDT is streamed."""
        eth_alert = PriceAlert(instrument=ETH, target_price=Decimal("3000"), id="eth-3k")
        btc_alert = PriceAlert(instrument=BTC, target_price=Decimal("50000"), id="btc-50k")
        supervisor = make_supervisor(alerts=[eth_alert, btc_alert])
        stub_fetcher.last_prices["ethusdt"] = [Decimal("2950"), Decimal("3050")]
        await supervisor.start()

        assert await supervisor.poll_once() == []
        fired = await supervisor.poll_once()

        assert [(e.alert.id, e.price) for e in fired] == [("eth-3k", Decimal("3050"))]
        assert [e.alert.id for e in supervisor.alert_events.drain()] == ["eth-3k"]
        assert eth_alert.enabled is False
        assert ("last", "btcusdt") not in stub_fetcher.calls
        await supervisor.shutdown()

    @pytest.mark.asyncio
    async def test_only_instruments_with_enabled_alerts_polled(self, make_supervisor, stub_fetcher):
        supervisor = make_supervisor(
            symbols=("btcusdt", "ethusdt", "solusdt"),
            alerts=[
                PriceAlert(instrument=SOL, target_price=Decimal("150"), enabled=False),
                PriceAlert(instrument=ETH, target_price=Decimal("3000")),
                PriceAlert(instrument=ETH, target_price=Decimal("3100")),
            ],
        )

        await supervisor.poll_once()

        assert [c for c in stub_fetcher.calls if c[0] == "last"] == [("last", "ethusdt")]

    @pytest.mark.asyncio
    async def test_untracked_instrument_alerts_still_polled(self, make_supervisor, stub_fetcher):
        supervisor = make_supervisor(
            symbols=("btcusdt",),
            alerts=[PriceAlert(instrument=SOL, target_price=Decimal("150"))],
        )
        stub_fetcher.last_prices["solusdt"] = [Decimal("140"), Decimal("155")]

        await supervisor.poll_once()
        fired = await supervisor.poll_once()

        assert len(fired) == 1

    @pytest.mark.asyncio
    async def test_unavailable_snapshot_is_skipped(self, make_supervisor, stub_fetcher):
        supervisor = make_supervisor(alerts=[PriceAlert(instrument=ETH, target_price=Decimal("3000"))])
        stub_fetcher.last_prices["ethusdt"] = [Decimal("2950"), None, Decimal("3050")]

        await supervisor.poll_once()
        assert await supervisor.poll_once() == []
        assert supervisor.session.prices.get(ETH) == Decimal("2950")

        fired = await supervisor.poll_once()
        assert len(fired) == 1
        assert fired[0].previous_price == Decimal("2950")

    @pytest.mark.asyncio
    async def test_stream_and_poll_share_last_price(self, make_supervisor, stub_fetcher, stub_feed, wait_until):
        """A price seen on the stream is the baseline for the next poll."""
        alert = PriceAlert(instrument=BTC, target_price=Decimal("50000"), persistent=True)
        supervisor = make_supervisor(alerts=[alert])
        await supervisor.start()

        await supervisor.on_trade(PriceObservation(instrument=BTC, price=Decimal("49500")))
        await supervisor.switch(ETH)
        await wait_until(lambda: stub_feed.active == 1)
        stub_fetcher.last_prices["btcusdt"] = [Decimal("50200")]
        fired = await supervisor.poll_once()

        assert len(fired) == 1
        assert fired[0].previous_price == Decimal("49500")
        assert alert.enabled is True
        await supervisor.shutdown()

    @pytest.mark.asyncio
    async def test_poll_loop_runs_on_interval(self, make_supervisor, stub_fetcher, quiet_config, tmp_path, wait_until):
        config = replace(quiet_config, timing=TimingParams(
            change_refresh_seconds=3600,
            closes_refresh_seconds=3600,
            alert_poll_seconds=0.01,
        ))
        store = JsonStateStore(str(tmp_path))
        supervisor = make_supervisor(config=config, store=store)
        alert = await supervisor.add_alert("ethusdt", "3000")
        stub_fetcher.last_prices["ethusdt"] = [Decimal("3010"), Decimal("2990")]

        await supervisor.start()
        await wait_until(lambda: len(supervisor.alert_events) == 1)

        event = supervisor.alert_events.get_nowait()
        assert event.alert.id == alert.id
        assert event.direction == "down"
        assert store.load_alerts()[0].enabled is False
        await supervisor.shutdown()

    @pytest.mark.asyncio
    async def test_polled_observations_are_tagged(self, make_supervisor, stub_fetcher):
        supervisor = make_supervisor(alerts=[PriceAlert(instrument=ETH, target_price=Decimal("3000"))])
        stub_fetcher.last_prices["ethusdt"] = [Decimal("2950")]
        seen = []
        original = supervisor._apply

        async def spy(observation):
            seen.append(observation)
            return await original(observation)

        supervisor._apply = spy
        await supervisor.poll_once()

        assert [o.source for o in seen] == [ObservationSource.POLL]


class HeldFetcher:
    """Fetcher whose last-price requests wait until released."""

    def __init__(self):
        self.entered = asyncio.Event()
        self.released = asyncio.Event()
        self.price = None

    async def fetch_last_price(self, instrument):
        self.entered.set()
        await self.released.wait()
        return self.price

    async def fetch_change_percent(self, instrument):
        return None

    async def fetch_recent_closes(self, instrument, interval=None, count=None):
        return None

    def release(self, price: Decimal) -> None:
        self.price = price
        self.released.set()


class TestPollInFlight:
    """A poll request outstanding while the stream or session moves on."""

    @pytest.mark.asyncio
    async def test_poll_result_discarded_after_switch_to_instrument(self, make_supervisor, stub_feed, wait_until):
        """Stream trades received after a switch are never followed by the older polled price."""
        alert = PriceAlert(instrument=ETH, target_price=Decimal("3000"), persistent=True)
        fetcher = HeldFetcher()
        supervisor = make_supervisor(alerts=[alert], fetcher=fetcher)
        await supervisor.start()

        poll = asyncio.create_task(supervisor.poll_once())
        await fetcher.entered.wait()

        await supervisor.switch(ETH)
        await wait_until(lambda: stub_feed.on_trade is not None and stub_feed.active == 1)
        await supervisor.on_trade(PriceObservation(instrument=ETH, price=Decimal("2995")))
        await supervisor.on_trade(PriceObservation(instrument=ETH, price=Decimal("3010")))

        fetcher.release(Decimal("2990"))
        assert await poll == []

        await supervisor.on_trade(PriceObservation(instrument=ETH, price=Decimal("3010")))

        events = supervisor.alert_events.drain()
        assert [(e.previous_price, e.price) for e in events] == [(Decimal("2995"), Decimal("3010"))]
        assert supervisor.session.prices.get(ETH) == Decimal("3010")
        await supervisor.shutdown()

    @pytest.mark.asyncio
    async def test_poll_result_discarded_after_cancel(self, make_supervisor):
        fetcher = HeldFetcher()
        supervisor = make_supervisor(
            alerts=[PriceAlert(instrument=ETH, target_price=Decimal("3000"))],
            fetcher=fetcher,
        )
        token = CancellationToken()

        poll = asyncio.create_task(supervisor.poll_once(token))
        await fetcher.entered.wait()
        token.cancel()
        fetcher.release(Decimal("2990"))

        assert await poll == []
        assert supervisor.session.prices.get(ETH) is None
        assert supervisor.observations == 0
