"""
Notification sink for booking lifecycle events.

Delivery (email templates, SMS) lives outside this service. Lifecycle code
calls ``dispatch`` after a successful commit; a failing sink is logged and
never changes the outcome of the transition that triggered it.
"""
import logging
from typing import Any, Dict, List, Tuple

logger = logging.getLogger(__name__)

BOOKING_CREATED = "booking_created"
BOOKING_CANCELLED = "booking_cancelled"
BOOKING_RESCHEDULED = "booking_rescheduled"
PAYMENT_COMPLETED = "payment_completed"


class Notifier:
    def send(self, event: str, payload: Dict[str, Any]) -> None:
        raise NotImplementedError


class LoggingNotifier(Notifier):
    def send(self, event: str, payload: Dict[str, Any]) -> None:
        logger.info("Notification %s for order %s", event, payload.get("order_number"))


class RecordingNotifier(Notifier):
    """Keeps every event in memory; used by tests and local runs."""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def send(self, event: str, payload: Dict[str, Any]) -> None:
        self.events.append((event, payload))

    def of_type(self, event: str) -> List[Dict[str, Any]]:
        return [payload for name, payload in self.events if name == event]


def dispatch(notifier: Notifier, event: str, payload: Dict[str, Any]) -> bool:
    """Fire-and-forget send. Returns False when the sink raised."""
    try:
        notifier.send(event, payload)
        return True
    except Exception:
        logger.exception("Failed to send %s notification for order %s", event, payload.get("order_number"))
        return False
