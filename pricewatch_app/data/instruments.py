"""Ordered, unique list of tracked instruments with a current selection."""

from collections.abc import Iterable, Iterator
from typing import Optional, Union

from .models import Instrument

InstrumentLike = Union[str, Instrument]


class InstrumentList:
    """
    Tracked instruments in display order.

    The selection index is always valid while the list is non-empty and
    wraps modulo the list length in either direction.
    """

    def __init__(self, instruments: Optional[Iterable[InstrumentLike]] = None,
                 index: int = 0) -> None:
        self._items: list[Instrument] = []
        self._index = 0
        for item in instruments or ():
            self.add(item)
        if self._items:
            self.select(index)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Instrument]:
        return iter(list(self._items))

    def __contains__(self, item: object) -> bool:
        if isinstance(item, (str, Instrument)):
            return self.index_of(item) is not None
        return False

    def __repr__(self) -> str:
        return f"InstrumentList({[i.symbol for i in self._items]!r}, index={self._index})"

    @property
    def index(self) -> int:
        return self._index

    @property
    def current(self) -> Optional[Instrument]:
        """Currently selected instrument, None when the list is empty."""
        if not self._items:
            return None
        return self._items[self._index]

    def index_of(self, item: InstrumentLike) -> Optional[int]:
        """Position of an instrument, compared case-insensitively."""
        target = Instrument.of(item)
        for position, instrument in enumerate(self._items):
            if instrument == target:
                return position
        return None

    def select(self, index: int) -> Optional[Instrument]:
        """Select by index, wrapping modulo the length. No-op when empty."""
        if not self._items:
            return None
        self._index = index % len(self._items)
        return self.current

    def select_instrument(self, item: InstrumentLike) -> Optional[Instrument]:
        """Select a tracked instrument. Returns None if it is not tracked."""
        position = self.index_of(item)
        if position is None:
            return None
        return self.select(position)

    def add(self, item: InstrumentLike) -> bool:
        """Append an instrument. Returns False if it is already tracked."""
        instrument = Instrument.of(item)
        if instrument in self._items:
            return False
        self._items.append(instrument)
        return True

    def remove(self, item: InstrumentLike) -> bool:
        """
        Remove an instrument, keeping the selection valid.

        Removing an instrument before the selection shifts the index so the
        same instrument stays selected. Removing the selected instrument keeps
        the index in place when still valid, otherwise wraps to 0.
        """
        position = self.index_of(item)
        if position is None:
            return False

        del self._items[position]
        if not self._items:
            self._index = 0
        elif position < self._index:
            self._index -= 1
        elif self._index >= len(self._items):
            self._index = 0
        return True

    def symbols(self) -> list[str]:
        """Flat list of symbols for persistence."""
        return [instrument.symbol for instrument in self._items]
