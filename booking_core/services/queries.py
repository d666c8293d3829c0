"""Read-side booking listings. Always reads the repository directly so the
status shown here is the same one BookingLifecycle acts on."""

import logging
from datetime import date
from typing import Optional

from booking_core.errors import InvalidDateRangeError, NotFoundError, UnauthorizedError
from booking_core.schemas.actor_schema import Actor, Role
from booking_core.schemas.booking_schema import ACTIVE_STATUSES, Booking, BookingStatus
from booking_core.store.base import BookingRepository, ProfessionalDirectory

logger = logging.getLogger(__name__)


def _newest_first(bookings: list[Booking]) -> list[Booking]:
    return sorted(bookings, key=lambda b: b.created_at, reverse=True)


def _chronological(bookings: list[Booking]) -> list[Booking]:
    return sorted(bookings, key=lambda b: (b.booking_date, b.start_time))


class BookingQueryService:
    def __init__(self, bookings: BookingRepository, professionals: ProfessionalDirectory) -> None:
        self._bookings = bookings
        self._professionals = professionals

    def get_booking(self, booking_id: str, actor: Actor) -> Booking:
        """Fetch one booking, visible only to its client and its professional."""
        booking = self._bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("booking", booking_id)
        if actor.id == booking.client_id:
            return booking
        professional = self._professionals.get(booking.professional_id)
        if professional is not None and professional.user_id == actor.id:
            return booking
        raise UnauthorizedError(f"Access denied to booking {booking_id}")

    def list_bookings_by_client(
        self, client_id: str, status: Optional[BookingStatus] = None
    ) -> list[Booking]:
        """Client's bookings, newest first, optionally only one status."""
        statuses = [status] if status is not None else None
        return _newest_first(self._bookings.query(client_id=client_id, statuses=statuses))

    def list_bookings_by_professional(
        self, professional_id: str, status: Optional[BookingStatus] = None
    ) -> list[Booking]:
        """Professional's bookings, newest first, optionally only one status."""
        statuses = [status] if status is not None else None
        return _newest_first(
            self._bookings.query(professional_id=professional_id, statuses=statuses)
        )

    def list_bookings_for_actor(
        self, actor: Actor, status: Optional[BookingStatus] = None
    ) -> list[Booking]:
        """Dispatch on the actor's role; professionals are resolved from their user id."""
        if actor.role == Role.PROFESSIONAL:
            professional = self._professional_for_user(actor.id)
            return self.list_bookings_by_professional(professional.id, status)
        return self.list_bookings_by_client(actor.id, status)

    def list_bookings_by_date_range(
        self,
        party_id: str,
        date_from: date,
        date_to: date,
        as_client: bool = True,
    ) -> list[Booking]:
        """
        Bookings whose snapshot date falls in the inclusive range, ordered by
        date then start time. ``party_id`` is a client id when ``as_client``,
        otherwise a professional's user id.
        """
        if date_from > date_to:
            raise InvalidDateRangeError(f"Start date {date_from} is after end date {date_to}")
        if as_client:
            found = self._bookings.query(client_id=party_id, date_from=date_from, date_to=date_to)
        else:
            professional = self._professional_for_user(party_id)
            found = self._bookings.query(
                professional_id=professional.id, date_from=date_from, date_to=date_to
            )
        return _chronological(found)

    def is_slot_booked(self, slot_id: str) -> bool:
        """True while a PENDING, CONFIRMED or COMPLETED booking references the slot."""
        return bool(self._bookings.query(slot_id=slot_id, statuses=ACTIVE_STATUSES))

    def can_book_slot(self, slot_id: str) -> bool:
        return not self.is_slot_booked(slot_id)

    def _professional_for_user(self, user_id: str):
        professional = self._professionals.find_by_user(user_id)
        if professional is None:
            raise NotFoundError("professional profile for user", user_id)
        return professional
