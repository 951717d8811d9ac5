"""Configuration loader with 3-tier parameter precedence."""

from dataclasses import dataclass, fields, is_dataclass
from pathlib import Path
from typing import Any, Optional

import structlog
import yaml

from ..errors import InvalidConfigurationError
from .defaults import (
    EventParams,
    FeedParams,
    FileSinkParams,
    LoggingParams,
    NotificationParams,
    PriceWatchConfig,
    SnapshotParams,
    StdoutSinkParams,
    StorageParams,
    TimingParams,
    get_default_config,
)
from .validation import ConfigValidator

logger = structlog.get_logger(__name__)

CONFIG_FILENAME = "pricewatch.yaml"


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    config_dir: Path
    defaults: PriceWatchConfig

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=Path(config_dir),
            defaults=get_default_config(),
        )

    def load_file_config(self) -> dict[str, Any]:
        """Load overrides from the YAML file in the config directory."""
        config_file = self.config_dir / CONFIG_FILENAME

        if not config_file.exists():
            return {}

        try:
            with open(config_file) as f:
                file_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise InvalidConfigurationError(
                f"Cannot parse {config_file}: {e}",
                context={"path": str(config_file)}
            ) from e

        if file_config is None:
            return {}
        if not isinstance(file_config, dict):
            raise InvalidConfigurationError(
                f"{config_file} must contain a mapping",
                value=type(file_config).__name__
            )
        return file_config

    def merge_config(self, overrides: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Explicit overrides, e.g. command line flags (highest priority)
        2. YAML file in the config directory
        3. Global defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)
        config = self._deep_merge(config, self.load_file_config())

        if overrides:
            config = self._deep_merge(config, overrides)

        return config

    def load(self, overrides: Optional[dict[str, Any]] = None) -> PriceWatchConfig:
        """Merge, validate and build the typed configuration."""
        merged = self.merge_config(overrides)

        errors = ConfigValidator.validate_config(merged)
        if errors:
            messages = [f"{err.field}: {err.message} (got: {err.value})" for err in errors]
            logger.error("Configuration validation failed", errors=messages)
            raise InvalidConfigurationError(
                "Invalid configuration: " + "; ".join(messages),
                context={"errors": messages}
            )

        return build_config(merged)

    def _dataclass_to_dict(self, obj: Any) -> Any:
        """Convert nested dataclasses to dictionary."""
        if is_dataclass(obj):
            return {f.name: self._dataclass_to_dict(getattr(obj, f.name)) for f in fields(obj)}
        if isinstance(obj, tuple):
            return list(obj)
        return obj

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result


def _section(cls: type, data: Optional[dict[str, Any]]) -> Any:
    """Build a params dataclass, ignoring unknown keys."""
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in (data or {}).items() if k in known})


def build_config(merged: dict[str, Any]) -> PriceWatchConfig:
    """Build a PriceWatchConfig from a merged configuration dictionary."""
    notifications = merged.get("notifications") or {}

    return PriceWatchConfig(
        feed=_section(FeedParams, merged.get("feed")),
        snapshot=_section(SnapshotParams, merged.get("snapshot")),
        timing=_section(TimingParams, merged.get("timing")),
        events=_section(EventParams, merged.get("events")),
        storage=_section(StorageParams, merged.get("storage")),
        logging=_section(LoggingParams, merged.get("logging")),
        notifications=NotificationParams(
            stdout=_section(StdoutSinkParams, notifications.get("stdout")),
            file=_section(FileSinkParams, notifications.get("file")),
        ),
        default_instruments=tuple(merged.get("default_instruments") or ()),
    )
