"""Display formatting for symbols, prices and connection placeholders."""

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from ..state.models import ConnectionState

if TYPE_CHECKING:
    from ..alerts.models import PriceAlert

QUOTE_ASSETS = ("USDT", "USD")
_CENTS = Decimal("0.01")

PLACEHOLDERS = {
    ConnectionState.CONNECTING: "Connecting…",
    ConnectionState.RECONNECTING: "Reconnecting…",
    ConnectionState.DISCONNECTED: "Reconnecting…",
}


def format_label(symbol: str, separator: str = " / ") -> str:
    """Format ``btcusdt`` as ``BTC / USDT``; unknown quotes stay upper-cased."""
    upper = symbol.upper()
    for quote in QUOTE_ASSETS:
        if upper.endswith(quote) and len(upper) > len(quote):
            return f"{upper[:-len(quote)]}{separator}{quote}"
    return upper


def format_price(price: Decimal) -> str:
    """US dollar currency format with two decimals, e.g. ``$50,200.00``."""
    rounded = price.quantize(_CENTS, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    return f"{sign}${abs(rounded):,.2f}"


def format_change(percent: Decimal) -> str:
    """Signed 24h change, e.g. ``+1.23%``."""
    rounded = percent.quantize(_CENTS, rounding=ROUND_HALF_UP)
    if rounded.is_zero():
        rounded = abs(rounded)
    sign = "+" if rounded >= 0 else ""
    return f"{sign}{rounded:.2f}%"


def placeholder_for(state: ConnectionState) -> str:
    """Text shown in place of the price while not connected."""
    return PLACEHOLDERS.get(state, "")


def alert_options_label(alert: "PriceAlert") -> str:
    """Comma-separated alert options, ``silent`` when none are set."""
    parts = []
    if alert.play_sound:
        parts.append("sound")
    if alert.flash_widget:
        parts.append("flash")
    if alert.persistent:
        parts.append("persistent")
    return ", ".join(parts) if parts else "silent"
