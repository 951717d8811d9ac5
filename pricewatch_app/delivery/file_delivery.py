"""JSON lines file notification sink."""

import json
from pathlib import Path
from typing import TYPE_CHECKING

from ..config.defaults import FileSinkParams
from .base import (
    BaseNotificationSink,
    DeliveryResult,
    DeliveryStatus,
    NotificationDeliveryError,
)

if TYPE_CHECKING:
    from ..events.models import AlertFired


class FileNotificationSink(BaseNotificationSink):
    """Appends one JSON record per notification."""

    def __init__(self, name: str, config: FileSinkParams):
        super().__init__(name, config)
        self.config: FileSinkParams = config

        if not config.output_path:
            raise NotificationDeliveryError("File sink requires an output path")
        self.output_path = Path(config.output_path)

        if config.create_dirs:
            self.output_path.parent.mkdir(parents=True, exist_ok=True)

    def deliver(self, events: list["AlertFired"]) -> list[DeliveryResult]:
        """Append notifications to the output file."""
        if not events:
            return []

        try:
            with open(self.output_path, "a", encoding="utf-8") as f:
                for event in events:
                    f.write(json.dumps(event.to_dict()) + "\n")

        except OSError as e:
            self.logger.warning(
                "Notification file write failed",
                sink=self.name,
                output_path=str(self.output_path),
                error=str(e)
            )
            return self._record([DeliveryResult(
                status=DeliveryStatus.FAILED,
                message=f"File system error: {e}",
                error=e
            ) for _ in events])

        self.logger.debug(
            "Notifications written to file",
            sink=self.name,
            count=len(events),
            output_path=str(self.output_path)
        )
        return self._record([DeliveryResult(
            status=DeliveryStatus.SUCCESS,
            message=f"Written to {self.output_path}"
        ) for _ in events])

    def health_check(self) -> bool:
        """Check that the output directory is writable."""
        parent = self.output_path.parent
        return parent.exists() and parent.is_dir()
