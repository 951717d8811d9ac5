"""Base classes for alert notification sinks."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

import structlog

if TYPE_CHECKING:
    from ..events.models import AlertFired


class DeliveryStatus(Enum):
    """Notification delivery status."""
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class DeliveryResult:
    """Result of a notification delivery attempt."""
    status: DeliveryStatus
    message: Optional[str] = None
    error: Optional[Exception] = None


class NotificationDeliveryError(Exception):
    """Sink cannot be set up with the given configuration."""
    pass


class BaseNotificationSink(ABC):
    """Base class for notification sinks."""

    def __init__(self, name: str, config: Any):
        self.name = name
        self.config = config
        self.logger = structlog.get_logger(f"notification.sink.{name}")
        self.delivered = 0
        self.failed = 0

    @abstractmethod
    def deliver(self, events: list["AlertFired"]) -> list[DeliveryResult]:
        """
        Deliver alert notifications to the sink.

        Args:
            events: Fired alert events, oldest first

        Returns:
            List of delivery results for each event
        """
        pass

    @abstractmethod
    def health_check(self) -> bool:
        """Check if the sink can currently accept notifications."""
        pass

    def _record(self, results: list[DeliveryResult]) -> list[DeliveryResult]:
        for result in results:
            if result.status == DeliveryStatus.SUCCESS:
                self.delivered += 1
            else:
                self.failed += 1
        return results

    def get_stats(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "delivered": self.delivered,
            "failed": self.failed,
        }
