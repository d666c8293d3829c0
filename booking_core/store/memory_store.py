"""
Dict-backed repositories for tests, demos and single-process deployments.

Each record id maps onto a lock stripe; ``update_if`` and ``delete_if``
hold that stripe across the status check and the write, which makes them
linearizable per record. Structural changes (insert/delete) and query
snapshots additionally take an index lock, always after the stripe.

Records are copied on the way in and out so callers can never change
stored state except through these methods.
"""

import logging
import threading
from datetime import date
from typing import Any, Iterable, Optional

from booking_core.locks import KeyedLock
from booking_core.schemas.actor_schema import Professional
from booking_core.schemas.booking_schema import Booking, BookingStatus
from booking_core.schemas.slot_schema import AvailabilitySlot, SlotStatus
from booking_core.store.base import BookingRepository, ProfessionalDirectory, SlotRepository

logger = logging.getLogger(__name__)


def _in_range(value: date, date_from: Optional[date], date_to: Optional[date]) -> bool:
    if date_from is not None and value < date_from:
        return False
    if date_to is not None and value > date_to:
        return False
    return True


class InMemorySlotRepository(SlotRepository):
    def __init__(self, lock_shards: int = 64) -> None:
        self._slots: dict[str, AvailabilitySlot] = {}
        self._stripes = KeyedLock(lock_shards)
        self._index_lock = threading.Lock()

    def add(self, slot: AvailabilitySlot) -> AvailabilitySlot:
        with self._stripes.hold(slot.id):
            with self._index_lock:
                if slot.id in self._slots:
                    raise ValueError(f"Slot {slot.id} already exists")
                self._slots[slot.id] = slot.model_copy()
        return slot.model_copy()

    def get(self, slot_id: str) -> Optional[AvailabilitySlot]:
        stored = self._slots.get(slot_id)
        return stored.model_copy() if stored is not None else None

    def query(
        self,
        professional_id: Optional[str] = None,
        date: Optional[date] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        status: Optional[SlotStatus] = None,
    ) -> list[AvailabilitySlot]:
        with self._index_lock:
            snapshot = list(self._slots.values())
        return [
            slot.model_copy()
            for slot in snapshot
            if (professional_id is None or slot.professional_id == professional_id)
            and (date is None or slot.date == date)
            and _in_range(slot.date, date_from, date_to)
            and (status is None or slot.status == status)
        ]

    def update_if(self, slot_id: str, expected_status: SlotStatus, **fields: Any) -> bool:
        with self._stripes.hold(slot_id):
            current = self._slots.get(slot_id)
            if current is None or current.status != expected_status:
                return False
            self._slots[slot_id] = current.model_copy(update=fields)
            return True

    def delete_if(self, slot_id: str, expected_status: SlotStatus) -> bool:
        with self._stripes.hold(slot_id):
            current = self._slots.get(slot_id)
            if current is None or current.status != expected_status:
                return False
            with self._index_lock:
                del self._slots[slot_id]
            return True

    def save(self, slot: AvailabilitySlot) -> AvailabilitySlot:
        with self._index_lock:
            self._slots[slot.id] = slot.model_copy()
        return slot.model_copy()

    def clear(self) -> None:
        """Remove all slots. Used by test fixtures for isolation."""
        with self._index_lock:
            self._slots.clear()


class InMemoryBookingRepository(BookingRepository):
    def __init__(self, lock_shards: int = 64) -> None:
        self._bookings: dict[str, Booking] = {}
        self._stripes = KeyedLock(lock_shards)
        self._index_lock = threading.Lock()

    def add(self, booking: Booking) -> Booking:
        with self._stripes.hold(booking.id):
            with self._index_lock:
                if booking.id in self._bookings:
                    raise ValueError(f"Booking {booking.id} already exists")
                self._bookings[booking.id] = booking.model_copy()
        logger.debug("Stored booking %s for slot %s", booking.id, booking.slot_id)
        return booking.model_copy()

    def get(self, booking_id: str) -> Optional[Booking]:
        stored = self._bookings.get(booking_id)
        return stored.model_copy() if stored is not None else None

    def query(
        self,
        client_id: Optional[str] = None,
        professional_id: Optional[str] = None,
        slot_id: Optional[str] = None,
        statuses: Optional[Iterable[BookingStatus]] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Booking]:
        wanted = set(statuses) if statuses is not None else None
        with self._index_lock:
            snapshot = list(self._bookings.values())
        return [
            booking.model_copy()
            for booking in snapshot
            if (client_id is None or booking.client_id == client_id)
            and (professional_id is None or booking.professional_id == professional_id)
            and (slot_id is None or booking.slot_id == slot_id)
            and (wanted is None or booking.status in wanted)
            and _in_range(booking.booking_date, date_from, date_to)
        ]

    def update_if(self, booking_id: str, expected_status: BookingStatus, **fields: Any) -> bool:
        with self._stripes.hold(booking_id):
            current = self._bookings.get(booking_id)
            if current is None or current.status != expected_status:
                return False
            self._bookings[booking_id] = current.model_copy(update=fields)
            return True

    def clear(self) -> None:
        """Remove all bookings. Used by test fixtures for isolation."""
        with self._index_lock:
            self._bookings.clear()


class InMemoryProfessionalDirectory(ProfessionalDirectory):
    def __init__(self) -> None:
        self._profiles: dict[str, Professional] = {}
        self._lock = threading.Lock()

    def add(self, professional: Professional) -> Professional:
        with self._lock:
            self._profiles[professional.id] = professional.model_copy()
        return professional.model_copy()

    def get(self, professional_id: str) -> Optional[Professional]:
        stored = self._profiles.get(professional_id)
        return stored.model_copy() if stored is not None else None

    def find_by_user(self, user_id: str) -> Optional[Professional]:
        with self._lock:
            profiles = list(self._profiles.values())
        found = next((p for p in profiles if p.user_id == user_id), None)
        return found.model_copy() if found is not None else None
