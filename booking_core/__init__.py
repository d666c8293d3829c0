"""Slot reservation and booking lifecycle core for a professional-services marketplace."""

from booking_core.events import BookingCreated, BookingStatusChanged, EventPublisher
from booking_core.services import (
    AvailabilityStore,
    BookingLifecycle,
    BookingQueryService,
    SlotReconciler,
    SlotReservationCoordinator,
)
from booking_core.wiring import BookingSystem, build_booking_system

__version__ = "0.1.0"

__all__ = [
    "AvailabilityStore",
    "SlotReservationCoordinator",
    "BookingLifecycle",
    "BookingQueryService",
    "SlotReconciler",
    "EventPublisher",
    "BookingCreated",
    "BookingStatusChanged",
    "BookingSystem",
    "build_booking_system",
]
