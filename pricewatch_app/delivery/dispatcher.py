"""Fan-out of fired alerts to the configured notification sinks."""

import asyncio
from typing import TYPE_CHECKING, Optional

import structlog

from ..config.defaults import NotificationParams
from .base import BaseNotificationSink, DeliveryStatus, NotificationDeliveryError
from .file_delivery import FileNotificationSink
from .stdout_delivery import StdoutNotificationSink

if TYPE_CHECKING:
    from ..events.channels import EventChannel
    from ..events.models import AlertFired

logger = structlog.get_logger(__name__)


def build_sinks(params: NotificationParams) -> list[BaseNotificationSink]:
    """Create the enabled sinks from configuration."""
    sinks: list[BaseNotificationSink] = []

    if params.stdout.enabled:
        sinks.append(StdoutNotificationSink("stdout", params.stdout))

    if params.file.enabled:
        try:
            sinks.append(FileNotificationSink("file", params.file))
        except (NotificationDeliveryError, OSError) as e:
            logger.error("Failed to initialize notification sink", sink="file", error=str(e))

    logger.info("Notification sinks initialized", sinks=[s.name for s in sinks])
    return sinks


class NotificationDispatcher:
    """Delivers each fired alert to every sink, off the event loop."""

    def __init__(self, sinks: Optional[list[BaseNotificationSink]] = None):
        self.logger = logger
        self.sinks = list(sinks or [])

    @classmethod
    def from_params(cls, params: NotificationParams) -> "NotificationDispatcher":
        return cls(build_sinks(params))

    async def dispatch(self, event: "AlertFired") -> None:
        """Deliver one notification to all sinks."""
        for sink in self.sinks:
            results = await asyncio.to_thread(sink.deliver, [event])
            for result in results:
                if result.status != DeliveryStatus.SUCCESS:
                    self.logger.error(
                        "Notification delivery failed",
                        sink=sink.name,
                        alert_id=event.alert.id,
                        message=result.message
                    )

    async def run(self, channel: "EventChannel[AlertFired]") -> None:
        """Consume a channel of fired alerts until it is closed."""
        async for event in channel:
            await self.dispatch(event)
