"""
User-visible notifications.

The session never talks to a UI directly: it calls an injected
NotificationSink. NotificationCenter keeps the current notification and a
history (read by the HTTP feed); LoggingNotificationSink writes to the log.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Protocol, runtime_checkable


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Notification:
    """A single notification"""
    message: str
    severity: Severity = Severity.INFO
    duration_ms: int = 5000
    sequence: int = 0
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "severity": self.severity.value,
            "duration_ms": self.duration_ms,
            "sequence": self.sequence,
            "timestamp": self.timestamp.isoformat(),
        }


@runtime_checkable
class NotificationSink(Protocol):
    """Receives (message, severity, duration) triples."""

    def notify(self, message: str, severity: Severity, duration_ms: int) -> None: ...


class NotificationCenter:
    """
    Keeps the latest notification plus a bounded history.

    A new notification replaces the current one, like a single toast slot.
    """

    def __init__(self, max_history: int = 100):
        self.max_history = max_history
        self.history: List[Notification] = []
        self.callbacks: Dict[str, Callable[[Notification], None]] = {}
        self._sequence = 0

    @property
    def current(self) -> Optional[Notification]:
        return self.history[-1] if self.history else None

    def register_callback(self, name: str, callback: Callable[[Notification], None]):
        """Register a callback for new notifications"""
        self.callbacks[name] = callback

    def unregister_callback(self, name: str):
        self.callbacks.pop(name, None)

    def notify(self, message: str, severity: Severity = Severity.INFO, duration_ms: int = 5000):
        self._sequence += 1
        notification = Notification(
            message=message,
            severity=Severity(severity),
            duration_ms=duration_ms,
            sequence=self._sequence,
        )
        self.history.append(notification)
        if len(self.history) > self.max_history:
            del self.history[:-self.max_history]

        for callback in list(self.callbacks.values()):
            callback(notification)

    def since(self, sequence: int) -> List[Notification]:
        """Notifications newer than a sequence number (for polling clients)."""
        return [n for n in self.history if n.sequence > sequence]

    def messages(self) -> List[str]:
        return [n.message for n in self.history]


class LoggingNotificationSink:
    """Writes notifications to a logger"""

    LEVELS = {
        Severity.INFO: logging.INFO,
        Severity.SUCCESS: logging.INFO,
        Severity.WARNING: logging.WARNING,
        Severity.ERROR: logging.ERROR,
    }

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("vpdf.notifications")

    def notify(self, message: str, severity: Severity = Severity.INFO, duration_ms: int = 5000):
        severity = Severity(severity)
        self.logger.log(self.LEVELS[severity], "[%s] %s (%dms)", severity.value, message, duration_ms)


class FanOutSink:
    """Delivers every notification to several sinks in order."""

    def __init__(self, *sinks: NotificationSink):
        self.sinks = list(sinks)

    def notify(self, message: str, severity: Severity = Severity.INFO, duration_ms: int = 5000):
        for sink in self.sinks:
            sink.notify(message, severity, duration_ms)
