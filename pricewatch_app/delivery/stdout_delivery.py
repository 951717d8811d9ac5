"""Console notification sink."""

import json
import sys
from typing import TYPE_CHECKING, Optional, TextIO

from ..config.defaults import StdoutSinkParams
from ..utils.formatting import alert_options_label
from .base import BaseNotificationSink, DeliveryResult, DeliveryStatus

if TYPE_CHECKING:
    from ..events.models import AlertFired

BELL = "\a"


class StdoutNotificationSink(BaseNotificationSink):
    """Prints alert notifications, ringing the terminal bell for sound alerts."""

    def __init__(self, name: str, config: StdoutSinkParams, stream: Optional[TextIO] = None):
        super().__init__(name, config)
        self.config: StdoutSinkParams = config
        self.stream = stream

    @property
    def _out(self) -> TextIO:
        return self.stream or sys.stdout

    def deliver(self, events: list["AlertFired"]) -> list[DeliveryResult]:
        """Print each notification on its own line."""
        results = []

        for event in events:
            try:
                output = self._format_event(event)
                if self.config.bell and event.alert.play_sound:
                    output = BELL + output
                print(output, file=self._out, flush=True)
                results.append(DeliveryResult(
                    status=DeliveryStatus.SUCCESS,
                    message="Printed to stdout"
                ))

            except (OSError, ValueError) as e:
                self.logger.error(
                    "Failed to print notification",
                    sink=self.name,
                    alert_id=event.alert.id,
                    error=str(e)
                )
                results.append(DeliveryResult(
                    status=DeliveryStatus.FAILED,
                    message=f"Stdout error: {e}",
                    error=e
                ))

        return self._record(results)

    def _format_event(self, event: "AlertFired") -> str:
        if self.config.format == "json":
            return json.dumps(event.to_dict())

        arrow = "▲" if event.direction == "up" else "▼"
        return (
            f"[{event.timestamp.isoformat()}] ALERT {arrow} {event.message}"
            f" [{alert_options_label(event.alert)}]"
        )

    def health_check(self) -> bool:
        """Check if stdout is available."""
        try:
            return self._out.writable()
        except (OSError, ValueError):
            return False
