"""Availability slot data models."""

from datetime import date, datetime, time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SlotStatus(str, Enum):
    """Occupancy of a slot. Only the reservation coordinator flips it."""

    OPEN = "OPEN"
    BOOKED = "BOOKED"


class AvailabilitySlot(BaseModel):
    """A professional-published, time-bounded unit of bookable availability."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    professional_id: str
    date: date
    start_time: time
    end_time: time
    status: SlotStatus = SlotStatus.OPEN
    created_at: datetime
    reserved_at: Optional[datetime] = None


class BulkCreateResult(BaseModel):
    """Outcome of creating the same time window on many dates."""

    created: list[AvailabilitySlot] = Field(default_factory=list)
    skipped: list[date] = Field(default_factory=list)
