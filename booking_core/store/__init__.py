from booking_core.store.base import BookingRepository, ProfessionalDirectory, SlotRepository
from booking_core.store.memory_store import (
    InMemoryBookingRepository,
    InMemoryProfessionalDirectory,
    InMemorySlotRepository,
)

__all__ = [
    "SlotRepository", "BookingRepository", "ProfessionalDirectory",
    "InMemorySlotRepository", "InMemoryBookingRepository", "InMemoryProfessionalDirectory",
]
