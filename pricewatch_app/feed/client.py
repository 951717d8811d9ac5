"""
Self-healing trade stream for a single instrument.

The stream reconnects with a fixed backoff forever; failures only ever show
up as connection state changes. Cancellation through the token or the owning
task ends the loop without another attempt.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from typing import Any, Optional, Union

import aiohttp

from ..config.defaults import FeedParams
from ..data.models import Instrument, PriceObservation
from ..data.parsers import parse_trade_message
from ..errors import FeedConnectionError, MalformedPayloadError
from ..logging.config import get_feed_logger
from ..state.models import ConnectionState
from ..utils.cancellation import CancellationToken

feed_logger = get_feed_logger(__name__)

TradeCallback = Callable[[PriceObservation], Union[None, Awaitable[None]]]
StateCallback = Callable[[ConnectionState], Union[None, Awaitable[None]]]


async def _invoke(callback: Callable[..., Any], *args: Any) -> None:
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class FeedClient:
    """Streams trades for one instrument over a WebSocket."""

    def __init__(self, session: aiohttp.ClientSession, params: Optional[FeedParams] = None) -> None:
        self.session = session
        self.params = params or FeedParams()
        self.logger = feed_logger
        self.connect_attempts = 0
        self.dropped_messages = 0

    def stream_url(self, instrument: Instrument) -> str:
        return f"{self.params.ws_base_url}{instrument.symbol}@trade"

    async def stream(
        self,
        instrument: Instrument,
        on_trade: TradeCallback,
        on_state_change: StateCallback,
        token: CancellationToken
    ) -> None:
        """
        Stream trades until cancelled.

        Args:
            instrument: Instrument to subscribe to
            on_trade: Receives each decoded observation, in arrival order
            on_state_change: Receives every connection state transition
            token: Cancelling it stops the loop before the next attempt
        """
        url = self.stream_url(instrument)
        attempt = 0

        while not token.cancelled:
            await _invoke(
                on_state_change,
                ConnectionState.CONNECTING if attempt == 0 else ConnectionState.RECONNECTING
            )
            attempt += 1
            self.connect_attempts += 1

            try:
                await self._connect_and_receive(url, instrument, on_trade, on_state_change, token)
                if token.cancelled:
                    break
                error = FeedConnectionError(
                    "Stream closed by server", url=url, instrument=instrument.symbol
                )
            except asyncio.CancelledError:
                raise
            except FeedConnectionError as e:
                error = e
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                error = FeedConnectionError(
                    f"Connection failed: {e or type(e).__name__}",
                    url=url,
                    instrument=instrument.symbol
                )
            except Exception as e:
                self.logger.error(
                    "Unexpected error in trade stream",
                    instrument=instrument.symbol,
                    error=str(e),
                    error_type=type(e).__name__
                )
                error = FeedConnectionError(str(e), url=url, instrument=instrument.symbol)

            self.logger.warning(
                "Trade stream disconnected",
                instrument=instrument.symbol,
                attempt=attempt,
                error=str(error),
                retry_in_seconds=self.params.reconnect_delay_seconds
            )
            await _invoke(on_state_change, ConnectionState.DISCONNECTED)

            if not await token.sleep(self.params.reconnect_delay_seconds):
                break

        self.logger.info("Trade stream stopped", instrument=instrument.symbol, attempts=attempt)

    async def _connect_and_receive(
        self,
        url: str,
        instrument: Instrument,
        on_trade: TradeCallback,
        on_state_change: StateCallback,
        token: CancellationToken
    ) -> None:
        ws = await asyncio.wait_for(
            self.session.ws_connect(url, heartbeat=self.params.heartbeat_seconds),
            timeout=self.params.connect_timeout_seconds
        )
        async with ws:
            self.logger.info("Trade stream connected", instrument=instrument.symbol, url=url)
            await _invoke(on_state_change, ConnectionState.CONNECTED)

            async for msg in ws:
                if token.cancelled:
                    return
                if msg.type == aiohttp.WSMsgType.TEXT:
                    try:
                        observation = parse_trade_message(msg.data, instrument)
                    except MalformedPayloadError as e:
                        self.dropped_messages += 1
                        self.logger.debug(
                            "Dropped malformed trade message",
                            instrument=instrument.symbol,
                            error=str(e)
                        )
                        continue
                    await _invoke(on_trade, observation)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    raise FeedConnectionError(
                        f"WebSocket error: {ws.exception()}",
                        url=url,
                        instrument=instrument.symbol
                    )
