"""
Centralized logging configuration for the PriceWatch engine.

Everything logs through structlog on top of stdlib logging. Logs go to
stderr by default so that stdout stays reserved for rendered prices and
alert notifications.
"""
import logging
import sys
from typing import TYPE_CHECKING, Any, Optional, TextIO

import structlog
from structlog.types import FilteringBoundLogger

if TYPE_CHECKING:
    from ..config.defaults import LoggingParams


def _renderer(format_json: bool, stream: TextIO) -> Any:
    if format_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=stream.isatty())


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    stream: Optional[TextIO] = None
) -> None:
    """
    Configure structlog for the entire application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: Emit one JSON object per line instead of console output
        include_timestamp: Add an ISO timestamp to every event
        stream: Output stream, stderr when omitted
    """
    out = stream if stream is not None else sys.stderr

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        stream=out,
        format="%(message)s",
        force=True,
    )

    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
    ]
    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors += [
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        _renderer(format_json, out),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_from_params(params: "LoggingParams", stream: Optional[TextIO] = None) -> None:
    """Configure logging from the ``logging`` section of the configuration."""
    configure_logging(level=params.level, format_json=params.format_json, stream=stream)


def get_logger(name: str) -> FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)
    """
    return structlog.get_logger(name)


def get_feed_logger(name: str) -> FilteringBoundLogger:
    """Logger bound to the feed subsystem (WebSocket stream and REST snapshots)."""
    return get_logger(name).bind(subsystem="feed")


def get_alert_logger(name: str) -> FilteringBoundLogger:
    """Logger bound to the alert subsystem; firings are kept as an audit trail."""
    return get_logger(name).bind(subsystem="alerts", audit_trail=True)


def log_connection_state(
    logger: FilteringBoundLogger,
    instrument: str,
    from_state: str,
    to_state: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a connection state change.

    Drops to ``disconnected`` are warnings; every other change is info.

    Args:
        logger: Structlog logger instance
        instrument: Instrument symbol owning the connection
        from_state: Previous connection state
        to_state: New connection state
        context: Additional context data
    """
    bound_logger = logger.bind(
        instrument=instrument,
        from_state=from_state,
        to_state=to_state,
    )
    if context:
        bound_logger = bound_logger.bind(context=context)

    if to_state == "disconnected":
        bound_logger.warning("Connection state change")
    else:
        bound_logger.info("Connection state change")


def log_alert_fired(
    logger: FilteringBoundLogger,
    alert_id: str,
    instrument: str,
    target_price: str,
    price: str,
    persistent: bool,
    context: Optional[dict[str, Any]] = None
) -> None:
    """Log an alert firing. Prices are passed as decimal strings to keep precision."""
    bound_logger = logger.bind(
        alert_id=alert_id,
        instrument=instrument,
        target_price=target_price,
        price=price,
        persistent=persistent,
    )
    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.info("Alert fired")
