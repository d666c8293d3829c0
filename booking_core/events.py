"""
Booking lifecycle events and an in-process publisher.

Handlers are registered per event type. The notification and chat
subsystems subscribe here; the booking core only publishes. A failing
handler is logged and skipped, it never undoes the transition that
produced the event.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Union

from booking_core.schemas.booking_schema import BookingStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingCreated:
    booking_id: str
    client_id: str
    professional_id: str
    slot_id: str
    occurred_at: datetime


@dataclass(frozen=True)
class BookingStatusChanged:
    booking_id: str
    from_status: BookingStatus
    to_status: BookingStatus
    actor_id: Optional[str]
    occurred_at: datetime


BookingEvent = Union[BookingCreated, BookingStatusChanged]
EventHandler = Callable[[BookingEvent], None]


class EventPublisher:
    """Synchronous fan-out of booking events to registered handlers."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[EventHandler]] = {}

    def subscribe(self, event_type: type, handler: EventHandler) -> None:
        """Register ``handler`` for events of ``event_type``."""
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug("Handler registered for %s", event_type.__name__)

    def unsubscribe(self, event_type: type, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event: BookingEvent) -> int:
        """Deliver ``event`` to every handler of its type.

        Returns:
            The number of handlers that completed without raising.
        """
        delivered = 0
        for handler in list(self._handlers.get(type(event), [])):
            try:
                handler(event)
                delivered += 1
            except Exception:
                logger.exception(
                    "Event handler %r failed for %s(%s)",
                    handler, type(event).__name__, event.booking_id,
                )
        return delivered
