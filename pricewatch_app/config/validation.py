"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
VALID_SINK_FORMATS = ("pretty", "json")
MAX_POLL_SECONDS = 3600


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _positive(section: str, params: dict[str, Any], key: str,
              errors: list[ValidationError], integer: bool = False) -> None:
    if key not in params:
        return
    value = params[key]
    valid = isinstance(value, int) and not isinstance(value, bool) if integer else _is_number(value)
    if not valid or value <= 0:
        errors.append(ValidationError(
            field=f"{section}.{key}",
            message="Must be a positive integer" if integer else "Must be a positive number",
            value=value
        ))


def _boolean(section: str, params: dict[str, Any], key: str,
             errors: list[ValidationError]) -> None:
    if key in params and not isinstance(params[key], bool):
        errors.append(ValidationError(
            field=f"{section}.{key}",
            message="Must be a boolean",
            value=params[key]
        ))


def _url(section: str, params: dict[str, Any], key: str, schemes: tuple[str, ...],
         errors: list[ValidationError]) -> None:
    if key not in params:
        return
    value = params[key]
    parsed = urlparse(value) if isinstance(value, str) else None
    if parsed is None or parsed.scheme not in schemes or not parsed.netloc:
        errors.append(ValidationError(
            field=f"{section}.{key}",
            message=f"Must be a {'/'.join(schemes)} URL",
            value=value
        ))


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_feed_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate streaming feed parameters."""
        errors: list[ValidationError] = []

        _url("feed", params, "ws_base_url", ("ws", "wss"), errors)
        _positive("feed", params, "reconnect_delay_seconds", errors)
        _positive("feed", params, "connect_timeout_seconds", errors)
        _positive("feed", params, "heartbeat_seconds", errors)

        return errors

    @staticmethod
    def validate_snapshot_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate snapshot request parameters."""
        errors: list[ValidationError] = []

        _url("snapshot", params, "rest_base_url", ("http", "https"), errors)
        _positive("snapshot", params, "request_timeout_seconds", errors)
        _positive("snapshot", params, "closes_count", errors, integer=True)

        if "closes_interval" in params:
            value = params["closes_interval"]
            if not isinstance(value, str) or not value:
                errors.append(ValidationError(
                    field="snapshot.closes_interval",
                    message="Must be a non-empty interval string such as '1m'",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_timing_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate refresh and polling intervals."""
        errors: list[ValidationError] = []

        _positive("timing", params, "throttle_interval_ms", errors, integer=True)
        _positive("timing", params, "change_refresh_seconds", errors)
        _positive("timing", params, "closes_refresh_seconds", errors)
        _boolean("timing", params, "recent_closes_enabled", errors)

        # Polling every tick would hammer the REST API
        if "alert_poll_seconds" in params:
            value = params["alert_poll_seconds"]
            if not _is_number(value) or value < 1 or value > MAX_POLL_SECONDS:
                errors.append(ValidationError(
                    field="timing.alert_poll_seconds",
                    message=f"Must be a number between 1 and {MAX_POLL_SECONDS}",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_logging_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate logging parameters."""
        errors: list[ValidationError] = []

        if "level" in params:
            value = params["level"]
            if not isinstance(value, str) or value.upper() not in VALID_LOG_LEVELS:
                errors.append(ValidationError(
                    field="logging.level",
                    message=f"Must be one of {', '.join(VALID_LOG_LEVELS)}",
                    value=value
                ))
        _boolean("logging", params, "format_json", errors)

        return errors

    @staticmethod
    def validate_notification_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate notification sink parameters."""
        errors: list[ValidationError] = []

        stdout = params.get("stdout") or {}
        _boolean("notifications.stdout", stdout, "enabled", errors)
        _boolean("notifications.stdout", stdout, "bell", errors)
        if "format" in stdout and stdout["format"] not in VALID_SINK_FORMATS:
            errors.append(ValidationError(
                field="notifications.stdout.format",
                message=f"Must be one of {', '.join(VALID_SINK_FORMATS)}",
                value=stdout["format"]
            ))

        file_sink = params.get("file") or {}
        _boolean("notifications.file", file_sink, "enabled", errors)
        if file_sink.get("enabled") and not file_sink.get("output_path"):
            errors.append(ValidationError(
                field="notifications.file.output_path",
                message="Required when the file sink is enabled",
                value=file_sink.get("output_path")
            ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate complete configuration."""
        errors = []

        if "feed" in config:
            errors.extend(ConfigValidator.validate_feed_params(config["feed"]))

        if "snapshot" in config:
            errors.extend(ConfigValidator.validate_snapshot_params(config["snapshot"]))

        if "timing" in config:
            errors.extend(ConfigValidator.validate_timing_params(config["timing"]))

        if "events" in config:
            _positive("events", config["events"], "queue_size", errors, integer=True)

        if "logging" in config:
            errors.extend(ConfigValidator.validate_logging_params(config["logging"]))

        if "notifications" in config:
            errors.extend(ConfigValidator.validate_notification_params(config["notifications"]))

        if "default_instruments" in config:
            value = config["default_instruments"]
            if not isinstance(value, (list, tuple)) or not all(
                    isinstance(s, str) and s.strip() for s in value):
                errors.append(ValidationError(
                    field="default_instruments",
                    message="Must be a list of symbol strings",
                    value=value
                ))

        return errors
