"""
Persistence ports for slots, bookings and professional profiles.

The one hard requirement is ``update_if``: a conditional single-record
update whose check and write are indivisible from the point of view of
every other caller. Slot reservation correctness rests on it.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Iterable, Optional

from booking_core.schemas.actor_schema import Professional
from booking_core.schemas.booking_schema import Booking, BookingStatus
from booking_core.schemas.slot_schema import AvailabilitySlot, SlotStatus


class SlotRepository(ABC):
    # Adapters without an atomic conditional update set this to False; the
    # reservation coordinator then serializes per slot id itself.
    supports_conditional_update: bool = True

    @abstractmethod
    def add(self, slot: AvailabilitySlot) -> AvailabilitySlot:
        raise NotImplementedError

    @abstractmethod
    def get(self, slot_id: str) -> Optional[AvailabilitySlot]:
        raise NotImplementedError

    @abstractmethod
    def query(
        self,
        professional_id: Optional[str] = None,
        date: Optional[date] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        status: Optional[SlotStatus] = None,
    ) -> list[AvailabilitySlot]:
        """Return matching slots in no particular order."""
        raise NotImplementedError

    @abstractmethod
    def update_if(self, slot_id: str, expected_status: SlotStatus, **fields: Any) -> bool:
        """Apply ``fields`` only if the slot exists with ``expected_status``.

        Returns True iff this call performed the update.
        """
        raise NotImplementedError

    @abstractmethod
    def delete_if(self, slot_id: str, expected_status: SlotStatus) -> bool:
        """Delete the slot only if it currently has ``expected_status``."""
        raise NotImplementedError

    @abstractmethod
    def save(self, slot: AvailabilitySlot) -> AvailabilitySlot:
        """Unconditional overwrite. Only for callers that hold their own per-slot lock."""
        raise NotImplementedError


class BookingRepository(ABC):
    @abstractmethod
    def add(self, booking: Booking) -> Booking:
        raise NotImplementedError

    @abstractmethod
    def get(self, booking_id: str) -> Optional[Booking]:
        raise NotImplementedError

    @abstractmethod
    def query(
        self,
        client_id: Optional[str] = None,
        professional_id: Optional[str] = None,
        slot_id: Optional[str] = None,
        statuses: Optional[Iterable[BookingStatus]] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Booking]:
        """Return matching bookings in no particular order."""
        raise NotImplementedError

    @abstractmethod
    def update_if(self, booking_id: str, expected_status: BookingStatus, **fields: Any) -> bool:
        """Apply ``fields`` only if the booking still has ``expected_status``."""
        raise NotImplementedError


class ProfessionalDirectory(ABC):
    @abstractmethod
    def add(self, professional: Professional) -> Professional:
        raise NotImplementedError

    @abstractmethod
    def get(self, professional_id: str) -> Optional[Professional]:
        raise NotImplementedError

    @abstractmethod
    def find_by_user(self, user_id: str) -> Optional[Professional]:
        raise NotImplementedError
