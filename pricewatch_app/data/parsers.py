"""
Binance-specific parsers for trade stream and snapshot payloads.

Numeric fields arrive as strings and are parsed into ``Decimal``. Parsers
raise ``MalformedPayloadError`` (or ``MissingFieldError``) and leave the
drop-or-degrade decision to the caller.
"""

import json
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from ..errors import MalformedPayloadError, MissingFieldError
from .models import Instrument, ObservationSource, PriceObservation

TRADE_PRICE_FIELD = "p"
TRADE_TIME_FIELD = "T"
TICKER_LAST_PRICE_FIELD = "lastPrice"
TICKER_CHANGE_PERCENT_FIELD = "priceChangePercent"
KLINE_CLOSE_INDEX = 4


def parse_decimal(value: Any) -> Optional[Decimal]:
    """
    Parse an exchange numeric value into a finite Decimal.

    Args:
        value: String, int or Decimal from a JSON payload

    Returns:
        Decimal value, or None when the value is absent or unparsable
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        # Floats only reach here when callers bypass load_json
        value = repr(value)
    try:
        result = Decimal(value.strip() if isinstance(value, str) else value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    return result if result.is_finite() else None


def load_json(raw: Union[str, bytes]) -> Any:
    """Decode JSON text, keeping every non-integer number exact."""
    try:
        return json.loads(raw, parse_float=Decimal)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
        preview = raw[:100] if isinstance(raw, (str, bytes)) else repr(raw)[:100]
        raise MalformedPayloadError(
            f"Payload is not valid JSON: {e}",
            raw_data=str(preview),
            expected_format="json"
        ) from e


def _require_decimal(payload: Any, field: str) -> Decimal:
    if not isinstance(payload, dict):
        raise MalformedPayloadError(
            f"Payload must be a JSON object, got {type(payload).__name__}",
            raw_data=str(payload)[:100],
            expected_format="object"
        )
    if field not in payload:
        raise MissingFieldError(f"Missing field '{field}'", field=field)
    value = parse_decimal(payload[field])
    if value is None:
        raise MissingFieldError(
            f"Field '{field}' is not a decimal: {payload[field]!r}",
            field=field,
            raw_data=str(payload[field])[:100]
        )
    return value


def _trade_time(payload: dict[str, Any]) -> datetime:
    value = payload.get(TRADE_TIME_FIELD)
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            pass
    return datetime.now(timezone.utc)


def parse_trade_message(raw: Union[str, bytes], instrument: Instrument) -> PriceObservation:
    """
    Parse a trade stream message into a price observation.

    Args:
        raw: Raw WebSocket text frame
        instrument: Instrument the stream is scoped to

    Returns:
        Stream-sourced PriceObservation

    Raises:
        MalformedPayloadError: Message is not JSON or has no usable price
    """
    payload = load_json(raw)
    price = _require_decimal(payload, TRADE_PRICE_FIELD)
    return PriceObservation(
        instrument=instrument,
        price=price,
        timestamp=_trade_time(payload),
        source=ObservationSource.STREAM,
    )


def parse_ticker_field(raw: Union[str, bytes], field: str) -> Decimal:
    """
    Extract one decimal field from a 24h ticker response.

    Raises:
        MalformedPayloadError: Response is not JSON or the field is unusable
    """
    return _require_decimal(load_json(raw), field)


def parse_kline_closes(raw: Union[str, bytes]) -> list[Decimal]:
    """
    Extract closing prices from a klines response in chronological order.

    Rows whose close cannot be parsed are skipped.

    Raises:
        MalformedPayloadError: Response is not a JSON array
    """
    payload = load_json(raw)
    if not isinstance(payload, list):
        raise MalformedPayloadError(
            f"Klines payload must be an array, got {type(payload).__name__}",
            raw_data=str(payload)[:100],
            expected_format="array"
        )

    closes = []
    for row in payload:
        if not isinstance(row, list) or len(row) <= KLINE_CLOSE_INDEX:
            continue
        close = parse_decimal(row[KLINE_CLOSE_INDEX])
        if close is not None:
            closes.append(close)
    return closes
