"""Last observed price per instrument, shared by the stream and poll paths."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Optional

from ..data.models import Instrument


class LastPriceCache:
    """
    Mapping of instrument to its most recent observed price.

    Entries are created on the first observation and overwritten by every
    later one regardless of source; they are never removed. Each instrument
    has its own lock so a read-compare-write on one key is never interleaved
    with another writer of the same key.
    """

    def __init__(self) -> None:
        self._prices: dict[Instrument, Decimal] = {}
        self._locks: dict[Instrument, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._prices)

    def __contains__(self, instrument: object) -> bool:
        return instrument in self._prices

    def get(self, instrument: Instrument) -> Optional[Decimal]:
        return self._prices.get(instrument)

    @asynccontextmanager
    async def guard(self, instrument: Instrument) -> AsyncIterator[None]:
        """Hold the per-instrument lock."""
        lock = self._locks.setdefault(instrument, asyncio.Lock())
        async with lock:
            yield

    def swap(self, instrument: Instrument, price: Decimal) -> Optional[Decimal]:
        """Store the new price and return the previous one (None if first)."""
        previous = self._prices.get(instrument)
        self._prices[instrument] = price
        return previous
