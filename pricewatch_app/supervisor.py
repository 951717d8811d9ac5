"""
Stream supervisor coordinating live price tracking.

Owns the active instrument's stream scope (trade feed plus its refresh
loops) and the session scope (background alert polling), and routes every
observation from either path into the alert engine and the throttled
display channel:

    FeedClient → on_trade → throttle → display_events
                          └──────────→ AlertEngine → alert_events
    SnapshotFetcher → poll_once ─────→ AlertEngine → alert_events
"""

import asyncio
import dataclasses
import time
from collections.abc import Callable, Awaitable
from decimal import Decimal
from typing import Any, Optional, Union

import structlog

from .alerts.engine import AlertEngine
from .alerts.models import PriceAlert
from .config.defaults import PriceWatchConfig, get_default_config
from .data.models import Instrument, ObservationSource, PriceObservation
from .data.parsers import parse_decimal
from .errors import InvalidInstrumentError, PersistenceError
from .events.channels import EventChannel
from .events.models import (
    AlertFired,
    ChangePercentUpdate,
    ConnectionStateChanged,
    PriceUpdate,
    RecentClosesUpdate,
)
from .events.throttle import DisplayThrottle
from .feed.client import FeedClient
from .feed.snapshot import SnapshotFetcher
from .logging.config import get_feed_logger, log_connection_state
from .persistence.json_store import JsonStateStore
from .state.models import ConnectionState, SupervisorState
from .state.session import TrackingSession
from .utils.cancellation import CancellationToken, TaskScope

logger = structlog.get_logger(__name__)
feed_logger = get_feed_logger(__name__)

InstrumentLike = Union[str, Instrument]
DisplayEvent = Union[PriceUpdate, ChangePercentUpdate, RecentClosesUpdate]


class StreamSupervisor:
    """
    Coordinator for one tracking session.

    Surface: ``start``, ``switch``, ``step``, ``add_instrument``,
    ``remove_instrument``, ``shutdown``, alert management, and three event
    channels (``connection_events``, ``display_events``, ``alert_events``).
    At most one trade stream is live at any time: a switch cancels the
    current stream scope and waits for it to exit before the next one starts.
    """

    def __init__(
        self,
        session: TrackingSession,
        feed: FeedClient,
        fetcher: SnapshotFetcher,
        config: Optional[PriceWatchConfig] = None,
        store: Optional[JsonStateStore] = None,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.logger = logger
        self.config = config or get_default_config()
        self.session = session
        self.feed = feed
        self.fetcher = fetcher
        self.store = store

        self.alert_engine = AlertEngine(session.alerts)
        self.throttle = DisplayThrottle(self.config.timing.throttle_interval_ms / 1000.0, clock)

        queue_size = self.config.events.queue_size
        self.connection_events: EventChannel[ConnectionStateChanged] = EventChannel(queue_size, "connection")
        self.display_events: EventChannel[DisplayEvent] = EventChannel(queue_size, "display")
        self.alert_events: EventChannel[AlertFired] = EventChannel(queue_size, "alerts")

        self.state = SupervisorState.IDLE
        self.connection_state = ConnectionState.DISCONNECTED
        self.active_instrument: Optional[Instrument] = None
        self.observations = 0

        self._session_scope: Optional[TaskScope] = None
        self._stream_scope: Optional[TaskScope] = None
        self._control_lock = asyncio.Lock()
        self._alert_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, instrument: Optional[InstrumentLike] = None) -> bool:
        """
        Start streaming and background polling.

        Args:
            instrument: Tracked instrument to select first; defaults to the
                current selection

        Returns:
            True if the supervisor is now streaming
        """
        async with self._control_lock:
            if self.state != SupervisorState.IDLE:
                self.logger.warning("Start ignored", state=self.state.value)
                return False

            if instrument is not None:
                target = self._coerce(instrument)
                if target is None or self.session.instruments.select_instrument(target) is None:
                    self.logger.warning(
                        "Start instrument is not tracked, keeping current selection",
                        instrument=str(instrument)
                    )

            if self.session.active_instrument is None:
                self.logger.warning("No instruments to stream, staying idle")
                return False

            self._session_scope = TaskScope("session")
            self._session_scope.spawn(self._alert_poll_loop(self._session_scope.token), "alert-poll")
            self._start_stream()
            return True

    async def switch(self, target: Union[int, InstrumentLike]) -> Optional[Instrument]:
        """
        Select another instrument and restart the stream for it.

        Args:
            target: Absolute index (wrapped modulo the list length) or a
                tracked instrument

        Returns:
            Newly selected instrument, or None when the request was a no-op
        """
        async with self._control_lock:
            instruments = self.session.instruments
            if self.state == SupervisorState.CLOSED or not len(instruments):
                self.logger.warning("Switch ignored", state=self.state.value, tracked=len(instruments))
                return None

            if isinstance(target, int) and not isinstance(target, bool):
                instruments.select(target)
            else:
                instrument = self._coerce(target)
                if instrument is None or instruments.select_instrument(instrument) is None:
                    self.logger.warning("Switch target is not tracked", target=str(target))
                    return None

            await self._restart_stream()
            return instruments.current

    async def step(self, offset: int) -> Optional[Instrument]:
        """Move the selection by ``offset`` positions, wrapping around."""
        return await self.switch(self.session.instruments.index + offset)

    async def shutdown(self) -> None:
        """Cancel every task and close the event channels."""
        async with self._control_lock:
            if self.state == SupervisorState.CLOSED:
                return

            await self._stop_stream()
            if self._session_scope is not None:
                await self._session_scope.cancel()
                self._session_scope = None

            self.state = SupervisorState.CLOSED
            for channel in (self.connection_events, self.display_events, self.alert_events):
                channel.close()

            self.logger.info("Supervisor shut down", observations=self.observations)

    # ------------------------------------------------------------------
    # Instrument list
    # ------------------------------------------------------------------

    async def add_instrument(self, symbol: InstrumentLike) -> bool:
        """Track a new instrument. Never starts a stream by itself."""
        instrument = self._coerce(symbol)
        if instrument is None:
            return False

        async with self._control_lock:
            if not self.session.instruments.add(instrument):
                self.logger.info("Instrument already tracked", instrument=instrument.symbol)
                return False
            await self._persist_instruments()

        self.logger.info("Instrument added", instrument=instrument.symbol)
        return True

    async def remove_instrument(self, symbol: InstrumentLike) -> bool:
        """
        Stop tracking an instrument.

        Removing the active instrument selects the fallback and restarts the
        stream. The last remaining instrument cannot be removed.
        """
        instrument = self._coerce(symbol)
        if instrument is None:
            return False

        async with self._control_lock:
            instruments = self.session.instruments
            if instrument not in instruments:
                return False
            if len(instruments) <= 1:
                self.logger.warning("Refusing to remove the last instrument", instrument=instrument.symbol)
                return False

            was_active = instrument == instruments.current
            instruments.remove(instrument)
            await self._persist_instruments()

            self.logger.info(
                "Instrument removed",
                instrument=instrument.symbol,
                was_active=was_active,
                fallback=instruments.current.symbol if was_active else None
            )
            if was_active:
                await self._restart_stream()
            return True

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    async def add_alert(
        self,
        symbol: InstrumentLike,
        target_price: Union[Decimal, str, int],
        persistent: bool = False,
        play_sound: bool = True,
        flash_widget: bool = True
    ) -> Optional[PriceAlert]:
        """Create and persist a new enabled alert."""
        instrument = self._coerce(symbol)
        target = parse_decimal(target_price)
        if instrument is None or target is None or target <= 0:
            self.logger.warning("Invalid alert definition", symbol=str(symbol), target_price=str(target_price))
            return None

        alert = PriceAlert(
            instrument=instrument,
            target_price=target,
            persistent=persistent,
            play_sound=play_sound,
            flash_widget=flash_widget,
        )
        async with self._alert_lock:
            self.session.alerts.add(alert)
            await self._persist_alerts()

        self.logger.info("Alert added", alert_id=alert.id, instrument=instrument.symbol, target_price=str(target))
        return alert

    async def remove_alert(self, alert_id: str) -> bool:
        async with self._alert_lock:
            removed = self.session.alerts.remove(alert_id)
            if removed:
                await self._persist_alerts()
        return removed

    async def set_alert_enabled(self, alert_id: str, enabled: bool) -> bool:
        async with self._alert_lock:
            updated = self.session.alerts.set_enabled(alert_id, enabled)
            if updated:
                await self._persist_alerts()
        return updated

    # ------------------------------------------------------------------
    # Observation routing
    # ------------------------------------------------------------------

    async def on_trade(self, observation: PriceObservation) -> None:
        """Route a stream trade: throttled display, unthrottled alerting."""
        if observation.instrument != self.active_instrument:
            feed_logger.debug("Dropped trade for inactive instrument", instrument=observation.instrument.symbol)
            return

        if self.throttle.allow():
            self.display_events.publish(PriceUpdate(
                instrument=observation.instrument,
                price=observation.price,
                timestamp=observation.timestamp,
            ))

        await self.observe(observation)

    async def observe(self, observation: PriceObservation) -> list[AlertFired]:
        """
        Apply one observation to the price cache and the alert engine.

        The per-instrument cache lock keeps each instrument's previous/current
        pair consistent across the stream and poll paths; the alert lock makes
        the firing batch and its save a single registry write.
        """
        async with self.session.prices.guard(observation.instrument):
            return await self._apply(observation)

    async def _apply(self, observation: PriceObservation) -> list[AlertFired]:
        # Caller holds the instrument's cache guard
        instrument = observation.instrument
        self.observations += 1
        previous = self.session.prices.swap(instrument, observation.price)

        async with self._alert_lock:
            fired = self.alert_engine.evaluate(instrument, previous, observation.price)
            if fired:
                await self._persist_alerts()

        events = [
            AlertFired(
                alert=alert,
                price=observation.price,
                previous_price=previous,
                timestamp=observation.timestamp,
            )
            for alert in fired
        ]
        for event in events:
            self.alert_events.publish(event)
        return events

    async def poll_once(self, token: Optional[CancellationToken] = None) -> list[AlertFired]:
        """
        Poll every inactive instrument that has an enabled alert once.

        A fetched price is discarded if its instrument became the streamed one
        while the request was in flight, or if ``token`` was cancelled. The
        stream owns that instrument from then on, so polled prices never reach
        the display and never land behind newer stream trades.

        Returns:
            Alerts fired by this sweep
        """
        candidates = self.session.alerts.enabled_instruments(exclude=self.active_instrument)
        fired: list[AlertFired] = []

        for instrument in candidates:
            if token is not None and token.cancelled:
                break
            price = await self.fetcher.fetch_last_price(instrument)
            if price is None:
                continue
            async with self.session.prices.guard(instrument):
                if token is not None and token.cancelled:
                    break
                if instrument == self.active_instrument:
                    self.logger.debug("Discarded poll for streamed instrument", instrument=instrument.symbol)
                    continue
                fired.extend(await self._apply(PriceObservation(
                    instrument=instrument,
                    price=price,
                    source=ObservationSource.POLL,
                )))

        if candidates:
            self.logger.debug(
                "Alert poll sweep finished",
                instruments=[i.symbol for i in candidates],
                fired=len(fired)
            )
        return fired

    def get_status(self) -> dict[str, Any]:
        """Snapshot of supervisor health for diagnostics."""
        return {
            "state": self.state.value,
            "active_instrument": self.active_instrument.symbol if self.active_instrument else None,
            "connection_state": self.connection_state.value,
            "tracked_instruments": self.session.instruments.symbols(),
            "alerts": len(self.session.alerts),
            "observations": self.observations,
            "display_passed": self.throttle.passed,
            "display_suppressed": self.throttle.suppressed,
            "connect_attempts": self.feed.connect_attempts,
            "dropped_messages": self.feed.dropped_messages,
            "dropped_events": {
                "connection": self.connection_events.dropped,
                "display": self.display_events.dropped,
                "alerts": self.alert_events.dropped,
            },
        }

    # ------------------------------------------------------------------
    # Stream scope (caller holds the control lock)
    # ------------------------------------------------------------------

    def _start_stream(self) -> None:
        instrument = self.session.active_instrument
        if instrument is None:
            return

        scope = TaskScope(f"stream:{instrument.symbol}")
        self._stream_scope = scope
        self.active_instrument = instrument
        self.state = SupervisorState.STREAMING
        self.throttle.reset()

        scope.spawn(
            self.feed.stream(
                instrument,
                self.on_trade,
                self._connection_callback(instrument),
                scope.token
            ),
            "feed"
        )
        scope.spawn(self._change_refresh_loop(instrument, scope.token), "change-refresh")
        if self.config.timing.recent_closes_enabled:
            scope.spawn(self._closes_refresh_loop(instrument, scope.token), "closes-refresh")

        self.logger.info("Streaming instrument", instrument=instrument.symbol)

    async def _stop_stream(self) -> None:
        scope = self._stream_scope
        if scope is None:
            return

        self._stream_scope = None
        await scope.cancel()
        if self.active_instrument is not None:
            self._set_connection_state(self.active_instrument, ConnectionState.DISCONNECTED)

    async def _restart_stream(self) -> None:
        if self.state != SupervisorState.STREAMING:
            return
        await self._stop_stream()
        self._start_stream()

    def _connection_callback(self, instrument: Instrument) -> Callable[[ConnectionState], None]:
        def on_state_change(state: ConnectionState) -> None:
            self._set_connection_state(instrument, state)
        return on_state_change

    def _set_connection_state(self, instrument: Instrument, state: ConnectionState) -> None:
        previous = self.connection_state
        self.connection_state = state
        if previous != state:
            log_connection_state(feed_logger, instrument.symbol, previous.value, state.value)
        self.connection_events.publish(ConnectionStateChanged(instrument=instrument, state=state))

    async def _change_refresh_loop(self, instrument: Instrument, token: CancellationToken) -> None:
        await self._refresh_loop(
            token,
            self.config.timing.change_refresh_seconds,
            lambda: self.fetcher.fetch_change_percent(instrument),
            lambda change: ChangePercentUpdate(instrument=instrument, change_percent=change),
        )

    async def _closes_refresh_loop(self, instrument: Instrument, token: CancellationToken) -> None:
        await self._refresh_loop(
            token,
            self.config.timing.closes_refresh_seconds,
            lambda: self.fetcher.fetch_recent_closes(instrument),
            lambda closes: RecentClosesUpdate(instrument=instrument, closes=tuple(closes)) if closes else None,
        )

    async def _refresh_loop(
        self,
        token: CancellationToken,
        interval: float,
        fetch: Callable[[], Awaitable[Any]],
        to_event: Callable[[Any], Optional[DisplayEvent]]
    ) -> None:
        while not token.cancelled:
            value = await fetch()
            if value is not None and not token.cancelled:
                event = to_event(value)
                if event is not None:
                    self.display_events.publish(event)
            if not await token.sleep(interval):
                break

    # ------------------------------------------------------------------
    # Session scope
    # ------------------------------------------------------------------

    async def _alert_poll_loop(self, token: CancellationToken) -> None:
        interval = self.config.timing.alert_poll_seconds
        while await token.sleep(interval):
            await self.poll_once(token)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _coerce(self, value: Any) -> Optional[Instrument]:
        try:
            return Instrument.of(value)
        except InvalidInstrumentError as e:
            self.logger.warning("Ignoring invalid instrument", value=str(value), error=str(e))
            return None

    async def _persist_instruments(self) -> None:
        if self.store is None:
            return
        try:
            await asyncio.to_thread(self.store.save_instruments, self.session.instruments.symbols())
        except PersistenceError as e:
            self.logger.warning("Failed to save instruments", error=str(e), target=e.target)

    async def _persist_alerts(self) -> None:
        if self.store is None:
            return
        snapshot = [dataclasses.replace(alert) for alert in self.session.alerts.snapshot()]
        try:
            await asyncio.to_thread(self.store.save_alerts, snapshot)
        except PersistenceError as e:
            self.logger.warning("Failed to save alerts", error=str(e), target=e.target)
