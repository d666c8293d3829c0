"""
Booking status transition table.

Five statuses, one initial (PENDING) and three terminal ones (CANCELLED,
COMPLETED, REJECTED). Every permitted change is listed explicitly together
with who may trigger it and whether it gives the slot back; anything not
listed is rejected with the list of statuses that would have been allowed.

Usage:
    transition = find_transition(BookingStatus.PENDING, BookingStatus.CANCELLED)
    assert transition.releases_slot
"""

import logging
from dataclasses import dataclass
from enum import Enum

from booking_core.errors import InvalidStateTransitionError
from booking_core.schemas.booking_schema import TERMINAL_STATUSES, BookingStatus

logger = logging.getLogger(__name__)


class BookingParty(str, Enum):
    """Which side of a booking an actor is on."""
    CLIENT = "client"
    PROFESSIONAL = "professional"


_EITHER = frozenset({BookingParty.CLIENT, BookingParty.PROFESSIONAL})
_PROFESSIONAL_ONLY = frozenset({BookingParty.PROFESSIONAL})


@dataclass(frozen=True)
class StatusTransition:
    """A single valid booking status change."""
    from_status: BookingStatus
    to_status: BookingStatus
    allowed_parties: frozenset
    releases_slot: bool = False


TRANSITIONS: list[StatusTransition] = [
    # --- Professional decision ---
    StatusTransition(BookingStatus.PENDING, BookingStatus.CONFIRMED, _PROFESSIONAL_ONLY),
    StatusTransition(BookingStatus.PENDING, BookingStatus.REJECTED, _PROFESSIONAL_ONLY,
                     releases_slot=True),

    # --- Cancellation ---
    StatusTransition(BookingStatus.PENDING, BookingStatus.CANCELLED, _EITHER,
                     releases_slot=True),
    StatusTransition(BookingStatus.CONFIRMED, BookingStatus.CANCELLED, _EITHER,
                     releases_slot=True),

    # --- Delivery: the slot stays BOOKED permanently ---
    StatusTransition(BookingStatus.CONFIRMED, BookingStatus.COMPLETED, _PROFESSIONAL_ONLY),
]


def is_terminal(status: BookingStatus) -> bool:
    """Check if no further transition is permitted from ``status``."""
    return status in TERMINAL_STATUSES


def valid_targets(from_status: BookingStatus) -> list[BookingStatus]:
    """Return all statuses reachable in one step from ``from_status``."""
    return [t.to_status for t in TRANSITIONS if t.from_status == from_status]


def find_transition(from_status: BookingStatus, to_status: BookingStatus) -> StatusTransition:
    """
    Look up the transition between two statuses.

    Raises:
        InvalidStateTransitionError: If the change is not in the table.
    """
    for t in TRANSITIONS:
        if t.from_status == from_status and t.to_status == to_status:
            return t

    logger.debug(
        "Rejected transition %s -> %s. Valid targets: %s",
        from_status.value, to_status.value, [s.value for s in valid_targets(from_status)],
    )
    raise InvalidStateTransitionError(from_status, to_status)
