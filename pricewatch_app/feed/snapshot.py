"""
Request/response snapshots: last price, 24h change and recent closes.

Every call is one bounded request with no retries. Network and payload
failures come back as ``None`` ("unavailable"); the caller tries again on
its next scheduled tick.
"""

import asyncio
from decimal import Decimal
from typing import Optional

import aiohttp

from ..config.defaults import SnapshotParams
from ..data.models import Instrument
from ..data.parsers import (
    TICKER_CHANGE_PERCENT_FIELD,
    TICKER_LAST_PRICE_FIELD,
    parse_kline_closes,
    parse_ticker_field,
)
from ..errors import MalformedPayloadError, SnapshotFetchError
from ..logging.config import get_feed_logger

feed_logger = get_feed_logger(__name__)

TICKER_PATH = "/api/v3/ticker/24hr"
KLINES_PATH = "/api/v3/klines"


class SnapshotFetcher:
    """Stateless REST snapshot client."""

    def __init__(self, session: aiohttp.ClientSession,
                 params: Optional[SnapshotParams] = None) -> None:
        self.session = session
        self.params = params or SnapshotParams()
        self.logger = feed_logger
        self.timeout = aiohttp.ClientTimeout(total=self.params.request_timeout_seconds)
        self.failures = 0

    async def fetch_last_price(self, instrument: Instrument) -> Optional[Decimal]:
        """Last traded price, or None when unavailable."""
        return await self._fetch_ticker_field(instrument, TICKER_LAST_PRICE_FIELD)

    async def fetch_change_percent(self, instrument: Instrument) -> Optional[Decimal]:
        """24h price change percentage, or None when unavailable."""
        return await self._fetch_ticker_field(instrument, TICKER_CHANGE_PERCENT_FIELD)

    async def fetch_recent_closes(
        self,
        instrument: Instrument,
        interval: Optional[str] = None,
        count: Optional[int] = None
    ) -> Optional[list[Decimal]]:
        """
        Closing prices of the most recent candles, oldest first.

        Args:
            instrument: Instrument to query
            interval: Candle interval, e.g. "1m" (defaults from config)
            count: Number of candles (defaults from config)

        Returns:
            Chronological closes, or None when unavailable
        """
        query = {
            "symbol": instrument.exchange_symbol,
            "interval": interval or self.params.closes_interval,
            "limit": str(count or self.params.closes_count),
        }
        try:
            raw = await self._request(KLINES_PATH, query, instrument)
            return parse_kline_closes(raw)
        except SnapshotFetchError as e:
            self._unavailable(instrument, KLINES_PATH, e)
        except MalformedPayloadError as e:
            self._malformed(instrument, KLINES_PATH, e)
        return None

    async def _fetch_ticker_field(self, instrument: Instrument, field: str) -> Optional[Decimal]:
        try:
            raw = await self._request(TICKER_PATH, {"symbol": instrument.exchange_symbol}, instrument)
            return parse_ticker_field(raw, field)
        except SnapshotFetchError as e:
            self._unavailable(instrument, TICKER_PATH, e)
        except MalformedPayloadError as e:
            self._malformed(instrument, TICKER_PATH, e)
        return None

    async def _request(self, path: str, query: dict[str, str], instrument: Instrument) -> str:
        url = f"{self.params.rest_base_url}{path}"
        try:
            async with self.session.get(url, params=query, timeout=self.timeout) as response:
                body = await response.text()
                if response.status != 200:
                    raise SnapshotFetchError(
                        f"HTTP {response.status}: {body[:200]}",
                        endpoint=path,
                        status=response.status,
                        instrument=instrument.symbol
                    )
                return body
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise SnapshotFetchError(
                f"Network error: {e or type(e).__name__}",
                endpoint=path,
                instrument=instrument.symbol
            ) from e

    def _unavailable(self, instrument: Instrument, path: str, error: SnapshotFetchError) -> None:
        self.failures += 1
        self.logger.warning(
            "Snapshot unavailable",
            instrument=instrument.symbol,
            endpoint=path,
            status=error.status,
            error=str(error)
        )

    def _malformed(self, instrument: Instrument, path: str, error: MalformedPayloadError) -> None:
        self.failures += 1
        self.logger.debug(
            "Dropped malformed snapshot payload",
            instrument=instrument.symbol,
            endpoint=path,
            error=str(error)
        )
