"""
Notification sink for attendance events.

Delivery (email/push/socket) belongs to another service; this module only hands
events to the configured sink. A failing sink never fails the caller.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from app.utils.json_serializer import sanitize_for_json

logger = logging.getLogger(__name__)

EVENT_CHECKED_IN = "CHECKED_IN"
EVENT_CHECKED_OUT = "CHECKED_OUT"
EVENT_AUTO_BREAK_START = "AUTO_BREAK_START"
EVENT_AUTO_BREAK_END = "AUTO_BREAK_END"
EVENT_AUTO_LOGOUT = "AUTO_LOGOUT"

AUDIENCE_EMPLOYEE = "employee"
AUDIENCE_ADMIN = "admin"


@dataclass(frozen=True)
class NotificationEvent:
    event_type: str
    employee_id: Optional[int]
    message: str
    audience: str = AUDIENCE_EMPLOYEE
    metadata: Dict[str, Any] = field(default_factory=dict)


class NotificationSink(Protocol):
    def send(self, event: NotificationEvent) -> None:
        ...


class LoggingNotificationSink:
    """Default sink: writes events to the application log."""

    def send(self, event: NotificationEvent) -> None:
        logger.info(
            "notification %s -> %s employee_id=%s: %s",
            event.event_type, event.audience, event.employee_id, event.message,
        )


class RecordingNotificationSink:
    """Keeps events in memory; used by tests and local tooling."""

    def __init__(self):
        self.events: List[NotificationEvent] = []

    def send(self, event: NotificationEvent) -> None:
        self.events.append(event)


_sink: NotificationSink = LoggingNotificationSink()


def set_notification_sink(sink: NotificationSink) -> NotificationSink:
    """Install a sink; returns the previous one so callers can restore it."""
    global _sink
    previous = _sink
    _sink = sink
    return previous


def get_notification_sink() -> NotificationSink:
    return _sink


def notify(
    event_type: str,
    employee_id: Optional[int],
    message: str,
    *,
    audience: str = AUDIENCE_EMPLOYEE,
    metadata: Optional[Dict[str, Any]] = None,
) -> None:
    """Fire-and-forget. Sink failures are logged and swallowed."""
    event = NotificationEvent(
        event_type=event_type,
        employee_id=employee_id,
        message=message,
        audience=audience,
        metadata=sanitize_for_json(metadata or {}),
    )
    try:
        _sink.send(event)
    except Exception:
        logger.error("Notification %s for employee_id=%s failed", event_type, employee_id, exc_info=True)
