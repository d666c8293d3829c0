"""Exception taxonomy for slot and booking operations.

Validation errors are raised before any mutation. ``SlotNotAvailableError``
is the only error that can follow a reservation attempt, and
``BookingPersistenceError`` is raised only after the reservation has been
compensated.
"""

from typing import Optional


class BookingCoreError(Exception):
    """Base class for every error raised by the booking core."""


class NotFoundError(BookingCoreError):
    """A professional, slot or booking does not exist."""

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} {entity_id} not found")


class InvalidTimeRangeError(BookingCoreError):
    """Start time is not strictly before end time."""

    def __init__(self, start, end) -> None:
        self.start = start
        self.end = end
        super().__init__(f"Start time {start} must be before end time {end}")


class InvalidDateRangeError(BookingCoreError):
    """A date range is inverted or too large."""


class OverlappingSlotError(BookingCoreError):
    """A new or edited slot overlaps an existing slot of the same professional."""

    def __init__(self, professional_id: str, date, conflicting_slot_id: Optional[str] = None) -> None:
        self.professional_id = professional_id
        self.date = date
        self.conflicting_slot_id = conflicting_slot_id
        detail = f" (conflicts with {conflicting_slot_id})" if conflicting_slot_id else ""
        super().__init__(
            f"Time slot overlaps with existing availability on {date}{detail}"
        )


class NoSlotsCreatedError(BookingCoreError):
    """Bulk creation finished without creating a single slot."""

    def __init__(self, skipped: list) -> None:
        self.skipped = list(skipped)
        super().__init__(
            f"No slots created; {len(self.skipped)} date(s) skipped due to overlaps"
        )


class SlotBookedError(BookingCoreError):
    """The slot is BOOKED and cannot be deleted or edited."""

    def __init__(self, slot_id: str) -> None:
        self.slot_id = slot_id
        super().__init__(f"Slot {slot_id} is booked")


class SlotNotAvailableError(BookingCoreError):
    """Another booking already holds the slot."""

    def __init__(self, slot_id: str) -> None:
        self.slot_id = slot_id
        super().__init__(f"Slot {slot_id} is no longer available")


class PastSlotNotBookableError(BookingCoreError):
    """The slot starts before the current time."""

    def __init__(self, slot_id: str) -> None:
        self.slot_id = slot_id
        super().__init__(f"Cannot book past time slot {slot_id}")


class SelfBookingNotAllowedError(BookingCoreError):
    """A professional's own user tried to book their service."""

    def __init__(self, client_id: str) -> None:
        self.client_id = client_id
        super().__init__("You cannot book your own service")


class SlotMismatchError(BookingCoreError):
    """The slot does not belong to the requested professional."""

    def __init__(self, slot_id: str, professional_id: str) -> None:
        self.slot_id = slot_id
        self.professional_id = professional_id
        super().__init__(
            f"Slot {slot_id} does not belong to professional {professional_id}"
        )


class InvalidStateTransitionError(BookingCoreError):
    """The requested booking status change is not in the transition table."""

    def __init__(self, from_status, to_status) -> None:
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid status transition from {_value(from_status)} to {_value(to_status)}"
        )


class UnauthorizedError(BookingCoreError):
    """The actor is not allowed to perform the operation."""


class BookingPersistenceError(BookingCoreError):
    """Storing a booking failed after its slot was reserved.

    The reservation has already been released when this is raised; the
    underlying store error is chained as ``__cause__``.
    """

    def __init__(self, slot_id: str) -> None:
        self.slot_id = slot_id
        super().__init__(f"Failed to create booking for slot {slot_id}")


def _value(status) -> str:
    return getattr(status, "value", str(status))
