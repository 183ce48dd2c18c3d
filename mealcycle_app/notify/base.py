"""Base classes for alert sinks."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from ..logging.config import get_logger


class AlertUrgency(str, Enum):
    """How insistently an alert should be presented."""
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class AlertSink(ABC):
    """Capability to play a tone and show an alert. Fire-and-forget."""

    def __init__(self, name: str):
        self.name = name
        self.logger = get_logger(f"notify.{name}")
        self._alert_count = 0
        self._error_count = 0

    @abstractmethod
    def emit_alert(self, title: str, body: str, urgency: AlertUrgency) -> None:
        """Present an alert; the return value is never consumed."""
        pass

    def health_check(self) -> bool:
        return True

    def get_stats(self) -> dict[str, Any]:
        """Get alert statistics."""
        return {
            "name": self.name,
            "alert_count": self._alert_count,
            "error_count": self._error_count,
        }

    def reset_stats(self):
        """Reset alert statistics."""
        self._alert_count = 0
        self._error_count = 0
