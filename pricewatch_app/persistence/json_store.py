"""JSON file persistence for the instrument and alert lists."""

import json
import os
import tempfile
import threading
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Optional

import structlog

from ..alerts.models import PriceAlert
from ..config.defaults import StorageParams
from ..errors import DataQualityError, InvalidConfigurationError, PersistenceError

logger = structlog.get_logger(__name__)


class JsonStateStore:
    """
    Loads and saves ``symbols.json`` and ``alerts.json``.

    Missing or corrupt files load as "nothing stored" so the caller can fall
    back to defaults. Saves replace the file atomically.
    """

    def __init__(self, data_dir: str = ".", instruments_file: str = "symbols.json",
                 alerts_file: str = "alerts.json"):
        self.data_dir = Path(data_dir)
        self.instruments_path = self.data_dir / instruments_file
        self.alerts_path = self.data_dir / alerts_file
        self.logger = logger
        self._lock = threading.Lock()

    @classmethod
    def from_params(cls, params: StorageParams) -> "JsonStateStore":
        return cls(
            data_dir=params.data_dir,
            instruments_file=params.instruments_file,
            alerts_file=params.alerts_file,
        )

    def load_instruments(self) -> Optional[list[str]]:
        """Stored symbols, or None when nothing usable is stored."""
        data = self._read(self.instruments_path)
        if not isinstance(data, list):
            return None
        symbols = [s for s in data if isinstance(s, str) and s.strip()]
        return symbols or None

    def save_instruments(self, symbols: Iterable[str]) -> None:
        self._write(self.instruments_path, list(symbols))

    def load_alerts(self) -> list[PriceAlert]:
        """Stored alerts; unreadable records are skipped."""
        data = self._read(self.alerts_path)
        if not isinstance(data, list):
            return []

        alerts = []
        for record in data:
            if not isinstance(record, dict):
                continue
            try:
                alerts.append(PriceAlert.from_dict(record))
            except (DataQualityError, InvalidConfigurationError) as e:
                self.logger.warning(
                    "Skipping unreadable alert record",
                    path=str(self.alerts_path),
                    alert_id=record.get("id"),
                    error=str(e)
                )
        return alerts

    def save_alerts(self, alerts: Iterable[PriceAlert]) -> None:
        self._write(self.alerts_path, [alert.to_dict() for alert in alerts])

    def _read(self, path: Path) -> Any:
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            self.logger.warning("Ignoring unreadable state file", path=str(path), error=str(e))
            return None

    def _write(self, path: Path, data: Any) -> None:
        with self._lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as f:
                        json.dump(data, f, indent=2)
                    os.replace(tmp_name, path)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
            except OSError as e:
                raise PersistenceError(
                    f"Failed to write {path}: {e}",
                    operation="write",
                    target=str(path)
                ) from e

        self.logger.debug("State file saved", path=str(path))
