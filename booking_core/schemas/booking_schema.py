"""Booking data models."""

from pydantic import BaseModel, ConfigDict
from datetime import date, datetime, time
from enum import Enum
from typing import Optional


class BookingStatus(str, Enum):
    """All states in the booking lifecycle."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"


TERMINAL_STATUSES = frozenset(
    {BookingStatus.CANCELLED, BookingStatus.COMPLETED, BookingStatus.REJECTED}
)

# Statuses whose booking still holds its slot. COMPLETED keeps the slot BOOKED forever.
ACTIVE_STATUSES = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.COMPLETED}
)


class Booking(BaseModel):
    """
    A client's claim on one slot.

    ``booking_date``, ``start_time`` and ``end_time`` are copied from the
    slot when the booking is created and never recomputed, so the record
    stays accurate after the slot is edited, deleted or reused.
    """
    model_config = ConfigDict(from_attributes=True)

    id: str
    client_id: str
    professional_id: str
    slot_id: str
    service_details: Optional[str] = None
    booking_date: date
    start_time: time
    end_time: time
    status: BookingStatus = BookingStatus.PENDING
    created_at: datetime
    updated_at: datetime
