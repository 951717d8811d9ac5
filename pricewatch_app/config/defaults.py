"""Default configuration parameters for the price tracking engine."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class FeedParams:
    """Streaming trade feed parameters."""
    ws_base_url: str = "wss://stream.binance.com:9443/ws/"
    reconnect_delay_seconds: float = 5.0            # Fixed backoff between attempts
    connect_timeout_seconds: float = 10.0           # Bound on a single connect
    heartbeat_seconds: float = 20.0                 # WebSocket ping interval


@dataclass(frozen=True)
class SnapshotParams:
    """Request/response snapshot parameters."""
    rest_base_url: str = "https://api.binance.com"
    request_timeout_seconds: float = 10.0
    closes_interval: str = "1m"
    closes_count: int = 60


@dataclass(frozen=True)
class TimingParams:
    """Refresh, polling and throttle intervals."""
    throttle_interval_ms: int = 250                 # Min gap between displayed prices
    change_refresh_seconds: float = 60.0            # 24h change refresh
    closes_refresh_seconds: float = 300.0           # Recent closes refresh
    recent_closes_enabled: bool = True
    alert_poll_seconds: float = 20.0                # Inactive-instrument alert polling


@dataclass(frozen=True)
class EventParams:
    """Event channel parameters."""
    queue_size: int = 256                           # Per channel, drop-oldest on overflow


@dataclass(frozen=True)
class StorageParams:
    """Persisted instrument and alert lists."""
    data_dir: str = "."
    instruments_file: str = "symbols.json"
    alerts_file: str = "alerts.json"


@dataclass(frozen=True)
class LoggingParams:
    """Logging output parameters."""
    level: str = "INFO"
    format_json: bool = False


@dataclass(frozen=True)
class StdoutSinkParams:
    """Console notification sink."""
    enabled: bool = True
    format: str = "pretty"                          # pretty, json
    bell: bool = True                               # Ring terminal bell for sound alerts


@dataclass(frozen=True)
class FileSinkParams:
    """JSON lines notification sink."""
    enabled: bool = False
    output_path: str = "alerts.log.jsonl"
    create_dirs: bool = True


@dataclass(frozen=True)
class NotificationParams:
    """Alert notification sinks."""
    stdout: StdoutSinkParams = field(default_factory=StdoutSinkParams)
    file: FileSinkParams = field(default_factory=FileSinkParams)


@dataclass(frozen=True)
class PriceWatchConfig:
    """Complete configuration."""
    feed: FeedParams
    snapshot: SnapshotParams
    timing: TimingParams
    events: EventParams
    storage: StorageParams
    logging: LoggingParams
    notifications: NotificationParams
    default_instruments: tuple[str, ...] = ("btcusdt", "ethusdt")


def get_default_config() -> PriceWatchConfig:
    """Get the default configuration instance."""
    return PriceWatchConfig(
        feed=FeedParams(),
        snapshot=SnapshotParams(),
        timing=TimingParams(),
        events=EventParams(),
        storage=StorageParams(),
        logging=LoggingParams(),
        notifications=NotificationParams(),
    )
