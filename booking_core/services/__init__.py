from booking_core.services.availability import AvailabilityStore, overlaps
from booking_core.services.lifecycle import BookingLifecycle
from booking_core.services.queries import BookingQueryService
from booking_core.services.reconciliation import ReconciliationReport, SlotReconciler
from booking_core.services.reservation import SlotReservationCoordinator
from booking_core.services.state_machine import (
    BookingParty,
    StatusTransition,
    find_transition,
    valid_targets,
)

__all__ = [
    "AvailabilityStore",
    "overlaps",
    "SlotReservationCoordinator",
    "BookingLifecycle",
    "BookingQueryService",
    "SlotReconciler",
    "ReconciliationReport",
    "BookingParty",
    "StatusTransition",
    "find_transition",
    "valid_targets",
]
