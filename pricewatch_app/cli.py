"""
Command line entry point.

Examples:
  pricewatch run                          # Stream the selected instrument
  pricewatch run --symbol ethusdt         # Stream a specific instrument
  pricewatch symbols add solusdt          # Track another instrument
  pricewatch alerts add btcusdt 50000     # One-shot alert at $50,000.00
  pricewatch alerts add btcusdt 60000 --persistent --silent
"""

import argparse
import asyncio
import sys
from typing import Any, Optional, TextIO

import aiohttp
import structlog

from .alerts.models import PriceAlert
from .config.defaults import PriceWatchConfig
from .config.loader import ConfigLoader
from .data.models import Instrument
from .data.parsers import parse_decimal
from .delivery.dispatcher import NotificationDispatcher
from .errors import InvalidConfigurationError, InvalidInstrumentError, PersistenceError
from .events.channels import EventChannel
from .events.models import (
    ChangePercentUpdate,
    ConnectionStateChanged,
    PriceUpdate,
    RecentClosesUpdate,
)
from .feed.client import FeedClient
from .feed.snapshot import SnapshotFetcher
from .logging.config import configure_from_params
from .persistence.json_store import JsonStateStore
from .state.models import ConnectionState
from .state.session import TrackingSession
from .supervisor import StreamSupervisor
from .utils.formatting import (
    alert_options_label,
    format_change,
    format_label,
    format_price,
    placeholder_for,
)

logger = structlog.get_logger(__name__)


class ConsoleRenderer:
    """Prints display and connection events as single lines."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream

    def _out(self) -> TextIO:
        return self.stream if self.stream is not None else sys.stdout

    def render(self, event: Any) -> str:
        label = format_label(event.instrument.symbol)
        if isinstance(event, PriceUpdate):
            return f"{label}  {format_price(event.price)}"
        if isinstance(event, ChangePercentUpdate):
            return f"{label}  24h {format_change(event.change_percent)}"
        if isinstance(event, RecentClosesUpdate):
            closes = event.closes
            return (
                f"{label}  {len(closes)} closes, "
                f"low {format_price(min(closes))} high {format_price(max(closes))}"
            )
        if isinstance(event, ConnectionStateChanged):
            if event.state == ConnectionState.CONNECTED:
                return f"{label}  connected"
            return f"{label}  {placeholder_for(event.state)}"
        return f"{label}  {event!r}"

    async def run(self, channel: EventChannel) -> None:
        out = self._out()
        async for event in channel:
            print(self.render(event), file=out, flush=True)


def load_config(args: argparse.Namespace) -> PriceWatchConfig:
    """Defaults, then config/pricewatch.yaml, then command line overrides."""
    overrides: dict[str, Any] = {}
    if args.data_dir:
        overrides["storage"] = {"data_dir": args.data_dir}
    logging_overrides: dict[str, Any] = {}
    if args.log_level:
        logging_overrides["level"] = args.log_level
    if args.json_logs:
        logging_overrides["format_json"] = True
    if logging_overrides:
        overrides["logging"] = logging_overrides

    loader = ConfigLoader.create(args.config_dir)
    return loader.load(overrides)


async def run_tracker(
    config: PriceWatchConfig,
    store: JsonStateStore,
    symbol: Optional[str] = None,
    stream: Optional[TextIO] = None
) -> None:
    """Run a streaming session until cancelled."""
    session = TrackingSession.from_store(store, config.default_instruments)
    if symbol is not None and session.instruments.add(symbol):
        store.save_instruments(session.instruments.symbols())

    renderer = ConsoleRenderer(stream)
    dispatcher = NotificationDispatcher.from_params(config.notifications)

    async with aiohttp.ClientSession() as http:
        supervisor = StreamSupervisor(
            session,
            FeedClient(http, config.feed),
            SnapshotFetcher(http, config.snapshot),
            config,
            store
        )
        consumers = [
            asyncio.create_task(renderer.run(supervisor.connection_events), name="render:connection"),
            asyncio.create_task(renderer.run(supervisor.display_events), name="render:display"),
            asyncio.create_task(dispatcher.run(supervisor.alert_events), name="notify:alerts"),
        ]
        try:
            if await supervisor.start(symbol):
                await asyncio.Event().wait()
        finally:
            await supervisor.shutdown()
            await asyncio.gather(*consumers, return_exceptions=True)


def cmd_run(args: argparse.Namespace, config: PriceWatchConfig, store: JsonStateStore) -> int:
    try:
        asyncio.run(run_tracker(config, store, args.symbol))
    except KeyboardInterrupt:
        print("\nStopped.")
    except InvalidInstrumentError as e:
        print(f"Invalid symbol: {e}", file=sys.stderr)
        return 1
    return 0


def cmd_symbols(args: argparse.Namespace, config: PriceWatchConfig, store: JsonStateStore) -> int:
    session = TrackingSession.from_store(store, config.default_instruments)
    instruments = session.instruments

    if args.action == "list":
        for position, instrument in enumerate(instruments):
            marker = "*" if position == instruments.index else " "
            print(f"{marker} {instrument.symbol:<12} {format_label(instrument.symbol)}")
        return 0

    try:
        instrument = Instrument.of(args.symbol)
    except InvalidInstrumentError as e:
        print(f"Invalid symbol: {e}", file=sys.stderr)
        return 1

    if args.action == "add":
        if not instruments.add(instrument):
            print(f"{instrument.symbol} is already tracked")
            return 0
    else:
        if instrument not in instruments:
            print(f"{instrument.symbol} is not tracked", file=sys.stderr)
            return 1
        if len(instruments) <= 1:
            print("Cannot remove the last tracked symbol", file=sys.stderr)
            return 1
        instruments.remove(instrument)

    store.save_instruments(instruments.symbols())
    print(f"Tracked: {', '.join(instruments.symbols())}")
    return 0


def _describe_alert(alert: PriceAlert) -> str:
    status = "on " if alert.enabled else "off"
    return (
        f"{alert.id}  [{status}] {format_label(alert.instrument.symbol):<12} "
        f"{format_price(alert.target_price):>14}  ({alert_options_label(alert)})"
    )


def cmd_alerts(args: argparse.Namespace, config: PriceWatchConfig, store: JsonStateStore) -> int:
    alerts = store.load_alerts()

    if args.action == "list":
        if not alerts:
            print("No alerts")
        for alert in alerts:
            print(_describe_alert(alert))
        return 0

    if args.action == "add":
        target = parse_decimal(args.price)
        if target is None or target <= 0:
            print(f"Invalid price: {args.price}", file=sys.stderr)
            return 1
        try:
            instrument = Instrument.of(args.symbol)
        except InvalidInstrumentError as e:
            print(f"Invalid symbol: {e}", file=sys.stderr)
            return 1
        alert = PriceAlert(
            instrument=instrument,
            target_price=target,
            persistent=args.persistent,
            play_sound=not args.silent,
            flash_widget=not args.no_flash,
        )
        alerts.append(alert)
        store.save_alerts(alerts)
        print(_describe_alert(alert))
        return 0

    matches = [a for a in alerts if a.id == args.alert_id]
    if not matches:
        print(f"No alert with id {args.alert_id}", file=sys.stderr)
        return 1

    if args.action == "remove":
        alerts = [a for a in alerts if a.id != args.alert_id]
    else:
        for alert in matches:
            alert.enabled = args.action == "enable"
            print(_describe_alert(alert))

    store.save_alerts(alerts)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pricewatch",
        description="Live crypto price tracking with threshold alerts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("Examples:", 1)[1] if __doc__ else None
    )
    parser.add_argument("--config-dir", default=None,
                        help="Directory holding pricewatch.yaml")
    parser.add_argument("--data-dir", default=None,
                        help="Directory for symbols.json and alerts.json")
    parser.add_argument("--log-level", default=None,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Log level")
    parser.add_argument("--json-logs", action="store_true",
                        help="Emit logs as JSON lines")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Stream prices and evaluate alerts")
    run_parser.add_argument("--symbol", default=None, help="Instrument to stream first")

    symbols_parser = subparsers.add_parser("symbols", help="Manage tracked symbols")
    symbols_sub = symbols_parser.add_subparsers(dest="action", required=True)
    symbols_sub.add_parser("list", help="List tracked symbols")
    for action in ("add", "remove"):
        action_parser = symbols_sub.add_parser(action, help=f"{action.capitalize()} a symbol")
        action_parser.add_argument("symbol")

    alerts_parser = subparsers.add_parser("alerts", help="Manage price alerts")
    alerts_sub = alerts_parser.add_subparsers(dest="action", required=True)
    alerts_sub.add_parser("list", help="List alerts")
    add_parser = alerts_sub.add_parser("add", help="Add an alert")
    add_parser.add_argument("symbol")
    add_parser.add_argument("price")
    add_parser.add_argument("--persistent", action="store_true",
                            help="Keep the alert enabled after it fires")
    add_parser.add_argument("--silent", action="store_true", help="No sound")
    add_parser.add_argument("--no-flash", action="store_true", help="No flash")
    for action in ("remove", "enable", "disable"):
        action_parser = alerts_sub.add_parser(action, help=f"{action.capitalize()} an alert")
        action_parser.add_argument("alert_id")

    return parser


COMMANDS = {
    "run": cmd_run,
    "symbols": cmd_symbols,
    "alerts": cmd_alerts,
}


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        config = load_config(args)
    except InvalidConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    configure_from_params(config.logging)
    store = JsonStateStore.from_params(config.storage)

    try:
        return COMMANDS[args.command](args, config, store)
    except PersistenceError as e:
        logger.error("Failed to save state", error=str(e), target=e.target)
        return 1


if __name__ == "__main__":
    sys.exit(main())
