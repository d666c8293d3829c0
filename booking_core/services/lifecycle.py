"""
Booking state machine: creation, status transitions and cancellation.

Creation runs as a reserve-then-persist saga. Every business rule is
checked before the slot is touched; the reservation itself is the
linearization point; and any failure between a successful reserve and a
stored booking releases the slot again before the error reaches the
caller.

Status changes for one booking are serialized in-process and persisted
with a conditional update on the booking's previous status, so two
callers cannot both move the same booking.
"""

from typing import Optional, Union

from booking_core.errors import (
    BookingPersistenceError,
    InvalidStateTransitionError,
    NotFoundError,
    PastSlotNotBookableError,
    SelfBookingNotAllowedError,
    SlotMismatchError,
    UnauthorizedError,
)
from booking_core.events import BookingCreated, BookingStatusChanged, EventPublisher
from booking_core.locks import KeyedLock
from booking_core.logging_context import get_request_logger
from booking_core.schemas.actor_schema import Actor, Professional
from booking_core.schemas.booking_schema import Booking, BookingStatus
from booking_core.schemas.slot_schema import AvailabilitySlot
from booking_core.services.reservation import SlotReservationCoordinator
from booking_core.services.state_machine import BookingParty, find_transition, is_terminal
from booking_core.store.base import BookingRepository, ProfessionalDirectory, SlotRepository
from booking_core.utils import Clock, new_id, slot_start, system_clock

logger = get_request_logger(__name__)


class BookingLifecycle:
    """The only component allowed to write booking status."""

    def __init__(
        self,
        slots: SlotRepository,
        bookings: BookingRepository,
        professionals: ProfessionalDirectory,
        coordinator: SlotReservationCoordinator,
        publisher: Optional[EventPublisher] = None,
        clock: Optional[Clock] = None,
        lock_shards: int = 64,
        booking_locks: Optional[KeyedLock] = None,
    ) -> None:
        self._slots = slots
        self._bookings = bookings
        self._professionals = professionals
        self._coordinator = coordinator
        self._publisher = publisher or EventPublisher()
        self._clock = clock or system_clock
        self._booking_locks = booking_locks or KeyedLock(lock_shards)

    def create_booking(
        self,
        client_id: str,
        professional_id: str,
        slot_id: str,
        service_details: Optional[str] = None,
    ) -> Booking:
        """
        Reserve ``slot_id`` for ``client_id`` and record a PENDING booking.

        Raises:
            NotFoundError: Professional or slot missing.
            SlotMismatchError, SelfBookingNotAllowedError, PastSlotNotBookableError:
                Rule violations, raised before any mutation.
            SlotNotAvailableError: Another booking holds the slot. Not retried.
            BookingPersistenceError: Storing failed; the slot was released first.
        """
        logger.info("Creating booking for client %s on slot %s", client_id, slot_id)

        professional = self._professionals.get(professional_id)
        if professional is None:
            raise NotFoundError("professional", professional_id)
        slot = self._slots.get(slot_id)
        if slot is None:
            raise NotFoundError("slot", slot_id)

        self._validate_booking_rules(client_id, professional, slot)

        with self._coordinator.claim(slot_id):
            # Re-read inside the claim: the snapshot must be the slot we actually hold.
            claimed = self._slots.get(slot_id)
            if claimed is None:
                raise NotFoundError("slot", slot_id)
            self._validate_booking_rules(client_id, professional, claimed)

            now = self._clock()
            booking = Booking(
                id=new_id("BK"),
                client_id=client_id,
                professional_id=professional_id,
                slot_id=slot_id,
                service_details=service_details,
                booking_date=claimed.date,
                start_time=claimed.start_time,
                end_time=claimed.end_time,
                status=BookingStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
            try:
                saved = self._bookings.add(booking)
            except Exception as exc:
                logger.warning("Persisting booking for slot %s failed: %s", slot_id, exc)
                raise BookingPersistenceError(slot_id) from exc

        logger.info("Booking created successfully with ID: %s", saved.id)
        self._publisher.publish(BookingCreated(
            booking_id=saved.id,
            client_id=client_id,
            professional_id=professional_id,
            slot_id=slot_id,
            occurred_at=now,
        ))
        return saved

    def update_status(
        self,
        booking_id: str,
        actor: Actor,
        target_status: Union[BookingStatus, str],
    ) -> Booking:
        """
        Move a booking along the transition table.

        A transition that gives the slot back releases it before the new
        status is stored. A release that finds the slot already OPEN is
        logged and does not block the status change: booking status is the
        source of truth and slot status is recoverable by reconciliation.

        Raises:
            NotFoundError: Booking or its professional missing.
            UnauthorizedError: Actor is not a participant, or not the party
                allowed to trigger this transition.
            InvalidStateTransitionError: Transition not permitted from the
                current status, or ``target_status`` is not a booking status.
        """
        with self._booking_locks.hold(booking_id):
            booking = self._load(booking_id)
            party = self._party_of(actor, booking)
            try:
                target = BookingStatus(target_status)
            except ValueError:
                raise InvalidStateTransitionError(booking.status, target_status) from None
            transition = find_transition(booking.status, target)
            if party not in transition.allowed_parties:
                raise UnauthorizedError(
                    f"A {party.value} cannot move booking {booking_id} to {target.value}"
                )

            released = False
            if transition.releases_slot:
                released = self._coordinator.release(booking.slot_id)
                if not released:
                    logger.warning(
                        "Failed to release slot %s for booking %s", booking.slot_id, booking_id
                    )

            now = self._clock()
            if not self._bookings.update_if(
                booking_id, booking.status, status=target, updated_at=now
            ):
                self._undo_release(booking, released)
                current = self._load(booking_id)
                raise InvalidStateTransitionError(current.status, target)

        logger.info(
            "Booking %s status updated %s -> %s by %s",
            booking_id, booking.status.value, target.value, actor.id,
        )
        self._publisher.publish(BookingStatusChanged(
            booking_id=booking_id,
            from_status=booking.status,
            to_status=target,
            actor_id=actor.id,
            occurred_at=now,
        ))
        return booking.model_copy(update={"status": target, "updated_at": now})

    def cancel_booking(self, booking_id: str, actor: Actor) -> Booking:
        """Cancel a PENDING or CONFIRMED booking on behalf of either participant."""
        return self.update_status(booking_id, actor, BookingStatus.CANCELLED)

    def update_service_details(self, booking_id: str, actor: Actor, service_details: str) -> Booking:
        """Replace the free-text service details of a non-terminal booking."""
        with self._booking_locks.hold(booking_id):
            booking = self._load(booking_id)
            self._party_of(actor, booking)
            if is_terminal(booking.status):
                raise InvalidStateTransitionError(booking.status, booking.status)
            now = self._clock()
            if not self._bookings.update_if(
                booking_id, booking.status, service_details=service_details, updated_at=now
            ):
                current = self._load(booking_id)
                raise InvalidStateTransitionError(current.status, booking.status)
        logger.info("Service details updated for booking %s", booking_id)
        return booking.model_copy(update={"service_details": service_details, "updated_at": now})

    # --- Internals ---

    def _validate_booking_rules(
        self, client_id: str, professional: Professional, slot: AvailabilitySlot
    ) -> None:
        if slot.professional_id != professional.id:
            raise SlotMismatchError(slot.id, professional.id)
        if professional.user_id == client_id:
            raise SelfBookingNotAllowedError(client_id)
        if slot_start(slot.date, slot.start_time) < self._clock():
            raise PastSlotNotBookableError(slot.id)

    def _load(self, booking_id: str) -> Booking:
        booking = self._bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("booking", booking_id)
        return booking

    def _party_of(self, actor: Actor, booking: Booking) -> BookingParty:
        if actor.id == booking.client_id:
            return BookingParty.CLIENT
        professional = self._professionals.get(booking.professional_id)
        if professional is None:
            raise NotFoundError("professional", booking.professional_id)
        if actor.id == professional.user_id:
            return BookingParty.PROFESSIONAL
        raise UnauthorizedError(f"Access denied to booking {booking.id}")

    def _undo_release(self, booking: Booking, released: bool) -> None:
        if not released:
            return
        if not self._coordinator.reserve(booking.slot_id):
            logger.error(
                "Slot %s was taken after its release for booking %s; reconciliation required",
                booking.slot_id, booking.id,
            )
