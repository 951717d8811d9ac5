"""Pytest configuration and shared fixtures."""

import asyncio
import json
from dataclasses import replace
from decimal import Decimal
from types import SimpleNamespace
from typing import Any, Callable, Optional

import aiohttp
import pytest

from pricewatch_app.alerts.models import PriceAlert
from pricewatch_app.alerts.registry import AlertRegistry
from pricewatch_app.config.defaults import TimingParams, get_default_config
from pricewatch_app.data.instruments import InstrumentList
from pricewatch_app.data.models import Instrument
from pricewatch_app.state.models import ConnectionState
from pricewatch_app.state.session import TrackingSession
from pricewatch_app.supervisor import StreamSupervisor
from pricewatch_app.utils.cancellation import CancellationToken

BTC = Instrument("btcusdt")
ETH = Instrument("ethusdt")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingToken(CancellationToken):
    """Cancellation token whose sleeps return immediately and are recorded."""

    def __init__(self, cancel_after: Optional[int] = None):
        super().__init__()
        self.sleeps: list[float] = []
        self.cancel_after = cancel_after

    async def sleep(self, delay: float) -> bool:
        self.sleeps.append(delay)
        if self.cancel_after is not None and len(self.sleeps) >= self.cancel_after:
            self.cancel()
        await asyncio.sleep(0)
        return not self.cancelled


def trade_frame(price: str, trade_time: int = 1700000000000) -> SimpleNamespace:
    """TEXT frame carrying a trade payload."""
    payload = {"e": "trade", "s": "BTCUSDT", "p": price, "q": "0.010", "T": trade_time}
    return SimpleNamespace(type=aiohttp.WSMsgType.TEXT, data=json.dumps(payload))


def text_frame(data: str) -> SimpleNamespace:
    return SimpleNamespace(type=aiohttp.WSMsgType.TEXT, data=data)


def error_frame() -> SimpleNamespace:
    return SimpleNamespace(type=aiohttp.WSMsgType.ERROR, data=None)


class FakeWebSocket:
    """Scripted WebSocket: yields its frames, then closes or stays open."""

    def __init__(self, session: "FakeClientSession", frames: list, hold_open: bool = False,
                 error: Optional[Exception] = None):
        self.session = session
        self.frames = list(frames)
        self.hold_open = hold_open
        self.error = error
        self.closed = False

    async def __aenter__(self) -> "FakeWebSocket":
        self.session.open_sockets += 1
        self.session.max_open_sockets = max(self.session.max_open_sockets, self.session.open_sockets)
        return self

    async def __aexit__(self, *exc_info: Any) -> bool:
        self.session.open_sockets -= 1
        self.closed = True
        return False

    def __aiter__(self):
        return self._frames()

    async def _frames(self):
        for frame in self.frames:
            yield frame
        if self.hold_open:
            await asyncio.Event().wait()

    def exception(self) -> Optional[Exception]:
        return self.error


class FakeResponse:
    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False

    async def text(self) -> str:
        return self.body


class FakeClientSession:
    """
    In-process stand-in for ``aiohttp.ClientSession``.

    ``connect_script`` entries are consumed one per ``ws_connect`` call: an
    exception is raised, a list of frames becomes a socket that closes after
    them, and a ``FakeWebSocket`` is returned as is. An empty script hangs
    until cancelled. ``rest`` maps a URL path to ``(status, body)`` or an
    exception.
    """

    def __init__(self):
        self.connect_script: list = []
        self.connect_urls: list[str] = []
        self.open_sockets = 0
        self.max_open_sockets = 0
        self.rest: dict[str, Any] = {}
        self.requests: list[tuple[str, dict]] = []

    def socket(self, frames: list, hold_open: bool = False, error: Optional[Exception] = None) -> FakeWebSocket:
        return FakeWebSocket(self, frames, hold_open=hold_open, error=error)

    async def ws_connect(self, url: str, heartbeat: Optional[float] = None) -> FakeWebSocket:
        self.connect_urls.append(url)
        if not self.connect_script:
            await asyncio.Event().wait()
        item = self.connect_script.pop(0)
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, FakeWebSocket):
            return item
        return self.socket(item)

    def get(self, url: str, params: Optional[dict] = None, timeout: Any = None) -> FakeResponse:
        self.requests.append((url, dict(params or {})))
        path = "/" + url.split("://", 1)[-1].split("/", 1)[-1]
        handler = self.rest.get(path, (404, '{"code": -1121, "msg": "Invalid symbol."}'))
        if callable(handler):
            handler = handler(params or {})
        if isinstance(handler, BaseException):
            raise handler
        status, body = handler
        return FakeResponse(status, body)


class StubFeed:
    """Feed double that reports CONNECTED and stays open until cancelled."""

    def __init__(self):
        self.connect_attempts = 0
        self.dropped_messages = 0
        self.active = 0
        self.max_active = 0
        self.log: list[tuple[str, str]] = []
        self.on_trade: Optional[Callable] = None

    async def stream(self, instrument, on_trade, on_state_change, token):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.connect_attempts += 1
        self.on_trade = on_trade
        self.log.append(("start", instrument.symbol))
        try:
            on_state_change(ConnectionState.CONNECTING)
            on_state_change(ConnectionState.CONNECTED)
            await token.wait()
        finally:
            self.active -= 1
            self.log.append(("stop", instrument.symbol))


class StubFetcher:
    """Snapshot double serving scripted last prices per symbol."""

    def __init__(self):
        self.last_prices: dict[str, list[Optional[Decimal]]] = {}
        self.change_percent: Optional[Decimal] = Decimal("1.25")
        self.closes: Optional[list[Decimal]] = [Decimal("100"), Decimal("101"), Decimal("99.5")]
        self.calls: list[tuple[str, str]] = []

    async def fetch_last_price(self, instrument):
        self.calls.append(("last", instrument.symbol))
        queue = self.last_prices.get(instrument.symbol)
        if not queue:
            return None
        return queue.pop(0)

    async def fetch_change_percent(self, instrument):
        self.calls.append(("change", instrument.symbol))
        return self.change_percent

    async def fetch_recent_closes(self, instrument, interval=None, count=None):
        self.calls.append(("closes", instrument.symbol))
        return self.closes


async def eventually(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Yield to the loop until ``predicate`` holds."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.001)


@pytest.fixture
def btc() -> Instrument:
    return BTC


@pytest.fixture
def eth() -> Instrument:
    return ETH


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_token() -> Callable[..., RecordingToken]:
    return RecordingToken


@pytest.fixture
def fake_session() -> FakeClientSession:
    return FakeClientSession()


@pytest.fixture
def frames() -> SimpleNamespace:
    """Factories for WebSocket frames."""
    return SimpleNamespace(trade=trade_frame, text=text_frame, error=error_frame)


@pytest.fixture
def stub_feed() -> StubFeed:
    return StubFeed()


@pytest.fixture
def stub_fetcher() -> StubFetcher:
    return StubFetcher()


@pytest.fixture
def wait_until() -> Callable:
    return eventually


@pytest.fixture
def quiet_config():
    """Default configuration with background intervals too long to tick in a test."""
    config = get_default_config()
    return replace(config, timing=TimingParams(
        change_refresh_seconds=3600,
        closes_refresh_seconds=3600,
        alert_poll_seconds=3600,
    ))


@pytest.fixture
def btc_alert() -> PriceAlert:
    return PriceAlert(instrument=BTC, target_price=Decimal("50000"), id="btc-50k")


@pytest.fixture
def eth_alert() -> PriceAlert:
    return PriceAlert(instrument=ETH, target_price=Decimal("3000"), id="eth-3k")


@pytest.fixture
def make_supervisor(stub_feed, stub_fetcher, quiet_config, fake_clock):
    """Factory for supervisors wired to the stub feed and fetcher."""

    def factory(symbols=("btcusdt", "ethusdt"), alerts=(), store=None, config=None,
                feed=None, fetcher=None) -> StreamSupervisor:
        session = TrackingSession(
            instruments=InstrumentList(symbols),
            alerts=AlertRegistry(alerts),
        )
        return StreamSupervisor(
            session,
            feed or stub_feed,
            fetcher or stub_fetcher,
            config or quiet_config,
            store,
            clock=fake_clock,
        )

    return factory
