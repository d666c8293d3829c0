"""
Availability slots: creation with overlap validation, edits, deletion
and range queries.

Two slots of one professional on one date overlap when their half-open
``[start, end)`` intervals intersect; touching boundaries do not count.
Booked slots block overlapping creation exactly like open ones.

Usage:
    store = AvailabilityStore(slots, professionals)
    slot = store.create_slot("PRO-1", date(2025, 1, 10), time(9), time(10))
    result = store.create_bulk("PRO-1", dates, time(9), time(10))
"""

import logging
from contextlib import nullcontext
from datetime import date, time
from typing import ContextManager, Iterable, Optional, Protocol

from booking_core.errors import (
    InvalidDateRangeError,
    InvalidTimeRangeError,
    NoSlotsCreatedError,
    NotFoundError,
    OverlappingSlotError,
    SlotBookedError,
    UnauthorizedError,
)
from booking_core.locks import KeyedLock
from booking_core.schemas.actor_schema import Professional
from booking_core.schemas.slot_schema import AvailabilitySlot, BulkCreateResult, SlotStatus
from booking_core.services.reservation import SlotReservationCoordinator
from booking_core.store.base import ProfessionalDirectory, SlotRepository
from booking_core.utils import Clock, enumerate_dates, new_id, system_clock

logger = logging.getLogger(__name__)

DEFAULT_MAX_BULK_DATES = 366
DEFAULT_MAX_RECURRENCE_WEEKS = 52


class TimeWindow(Protocol):
    start_time: time
    end_time: time


def overlaps(a: TimeWindow, b: TimeWindow) -> bool:
    """Half-open interval overlap test; symmetric, touching ends do not overlap."""
    return a.start_time < b.end_time and b.start_time < a.end_time


def _intervals_overlap(start: time, end: time, other_start: time, other_end: time) -> bool:
    return start < other_end and other_start < end


def _sort_key(slot: AvailabilitySlot):
    return (slot.date, slot.start_time)


class AvailabilityStore:
    """Owns slot records for every professional."""

    def __init__(
        self,
        slots: SlotRepository,
        professionals: ProfessionalDirectory,
        clock: Optional[Clock] = None,
        serialize_creation: bool = True,
        lock_shards: int = 64,
        max_bulk_dates: int = DEFAULT_MAX_BULK_DATES,
        max_recurrence_weeks: int = DEFAULT_MAX_RECURRENCE_WEEKS,
        coordinator: Optional[SlotReservationCoordinator] = None,
    ) -> None:
        self._slots = slots
        self._professionals = professionals
        self._clock = clock or system_clock
        self._creation_locks = KeyedLock(lock_shards) if serialize_creation else None
        self._max_bulk_dates = max_bulk_dates
        self._max_recurrence_weeks = max_recurrence_weeks
        self._coordinator = coordinator or SlotReservationCoordinator(
            slots, clock=self._clock, lock_shards=lock_shards
        )

    # --- Creation ---

    def create_slot(
        self, professional_id: str, date: date, start: time, end: time
    ) -> AvailabilitySlot:
        """
        Publish one OPEN slot.

        Raises:
            NotFoundError: Unknown professional.
            InvalidTimeRangeError: ``start`` is not before ``end``.
            OverlappingSlotError: Another slot that day intersects ``[start, end)``.
        """
        self._require_professional(professional_id)
        _check_time_range(start, end)
        return self._create_checked(professional_id, date, start, end)

    def create_bulk(
        self, professional_id: str, dates: Iterable[date], start: time, end: time
    ) -> BulkCreateResult:
        """
        Create the same ``[start, end)`` window on every date.

        Dates that collide with an existing slot (including an earlier date in
        the same batch) are skipped instead of aborting the batch.

        Raises:
            NoSlotsCreatedError: Nothing could be created.
        """
        self._require_professional(professional_id)
        _check_time_range(start, end)
        dates = list(dates)
        if len(dates) > self._max_bulk_dates:
            raise InvalidDateRangeError(
                f"Bulk creation accepts at most {self._max_bulk_dates} dates, got {len(dates)}"
            )

        result = BulkCreateResult()
        for slot_date in dates:
            try:
                result.created.append(self._create_checked(professional_id, slot_date, start, end))
            except OverlappingSlotError:
                result.skipped.append(slot_date)

        if not result.created:
            raise NoSlotsCreatedError(result.skipped)
        logger.info(
            "Bulk availability for %s: %d created, %d skipped",
            professional_id, len(result.created), len(result.skipped),
        )
        return result

    def create_bulk_range(
        self,
        professional_id: str,
        start_date: date,
        end_date: date,
        start: time,
        end: time,
        weekdays: Optional[Iterable[int]] = None,
        recurrence_weeks: int = 1,
    ) -> BulkCreateResult:
        """Enumerate an inclusive date range, optionally by weekday and repeated weekly, then bulk-create."""
        if start_date > end_date:
            raise InvalidDateRangeError(f"Start date {start_date} is after end date {end_date}")
        if not 1 <= recurrence_weeks <= self._max_recurrence_weeks:
            raise InvalidDateRangeError(
                f"recurrence_weeks must be between 1 and {self._max_recurrence_weeks}, "
                f"got {recurrence_weeks}"
            )
        dates = enumerate_dates(start_date, end_date, weekdays, recurrence_weeks)
        return self.create_bulk(professional_id, dates, start, end)

    # --- Queries ---

    def get_slot(self, slot_id: str) -> AvailabilitySlot:
        slot = self._slots.get(slot_id)
        if slot is None:
            raise NotFoundError("slot", slot_id)
        return slot

    def list_open_slots(
        self, professional_id: str, date_from: date, date_to: date
    ) -> list[AvailabilitySlot]:
        """OPEN slots within the inclusive date range, ascending by (date, start)."""
        self._require_professional(professional_id)
        if date_from > date_to:
            raise InvalidDateRangeError(f"Start date {date_from} is after end date {date_to}")
        slots = self._slots.query(
            professional_id=professional_id,
            date_from=date_from,
            date_to=date_to,
            status=SlotStatus.OPEN,
        )
        return sorted(slots, key=_sort_key)

    def list_slots(self, professional_id: str) -> list[AvailabilitySlot]:
        """Every slot of the professional regardless of status."""
        self._require_professional(professional_id)
        return sorted(self._slots.query(professional_id=professional_id), key=_sort_key)

    def list_slots_by_date(self, professional_id: str, date: date) -> list[AvailabilitySlot]:
        self._require_professional(professional_id)
        return sorted(self._slots.query(professional_id=professional_id, date=date), key=_sort_key)

    def has_overlapping_slot(
        self,
        professional_id: str,
        date: date,
        start: time,
        end: time,
        exclude_slot_id: Optional[str] = None,
    ) -> bool:
        return self._find_overlap(professional_id, date, start, end, exclude_slot_id) is not None

    # --- Edits and deletion ---

    def update_slot(
        self, slot_id: str, professional_id: str, date: date, start: time, end: time
    ) -> AvailabilitySlot:
        """
        Move an OPEN slot to a new date/time window.

        Raises:
            SlotBookedError: The slot is (or just became) BOOKED.
            UnauthorizedError: The slot belongs to another professional.
        """
        _check_time_range(start, end)
        slot = self._owned_slot(slot_id, professional_id)
        if slot.status == SlotStatus.BOOKED:
            raise SlotBookedError(slot_id)

        with self._creation_guard(professional_id):
            conflict = self._find_overlap(professional_id, date, start, end, exclude_slot_id=slot_id)
            if conflict is not None:
                raise OverlappingSlotError(professional_id, date, conflict.id)
            if not self._coordinator.update_if_open(
                slot_id, date=date, start_time=start, end_time=end
            ):
                raise SlotBookedError(slot_id)

        logger.info("Availability %s moved to %s %s-%s", slot_id, date, start, end)
        return self.get_slot(slot_id)

    def delete_slot(self, slot_id: str, professional_id: Optional[str] = None) -> None:
        """
        Delete an OPEN slot.

        Raises:
            NotFoundError: Unknown slot.
            UnauthorizedError: ``professional_id`` given and not the owner.
            SlotBookedError: The slot is BOOKED.
        """
        if professional_id is not None:
            slot = self._owned_slot(slot_id, professional_id)
        else:
            slot = self.get_slot(slot_id)
        if slot.status == SlotStatus.BOOKED:
            raise SlotBookedError(slot_id)
        # Conditional so a reservation landing after the read still wins.
        if not self._coordinator.delete_if_open(slot_id):
            raise SlotBookedError(slot_id)
        logger.info("Availability deleted successfully with ID: %s", slot_id)

    def delete_slots_by_date(self, professional_id: str, date: date) -> int:
        """Delete the professional's OPEN slots on ``date``; booked ones stay."""
        self._require_professional(professional_id)
        candidates = self._slots.query(
            professional_id=professional_id, date=date, status=SlotStatus.OPEN
        )
        deleted = sum(1 for slot in candidates if self._coordinator.delete_if_open(slot.id))
        logger.info("Deleted %d availabilities for %s on %s", deleted, professional_id, date)
        return deleted

    # --- Internals ---

    def _create_checked(
        self, professional_id: str, date: date, start: time, end: time
    ) -> AvailabilitySlot:
        with self._creation_guard(professional_id):
            conflict = self._find_overlap(professional_id, date, start, end)
            if conflict is not None:
                raise OverlappingSlotError(professional_id, date, conflict.id)
            slot = AvailabilitySlot(
                id=new_id("SL"),
                professional_id=professional_id,
                date=date,
                start_time=start,
                end_time=end,
                status=SlotStatus.OPEN,
                created_at=self._clock(),
            )
            saved = self._slots.add(slot)
        logger.info("Availability created: %s for %s on %s %s-%s", saved.id, professional_id, date, start, end)
        return saved

    def _find_overlap(
        self,
        professional_id: str,
        date: date,
        start: time,
        end: time,
        exclude_slot_id: Optional[str] = None,
    ) -> Optional[AvailabilitySlot]:
        for existing in self._slots.query(professional_id=professional_id, date=date):
            if existing.id == exclude_slot_id:
                continue
            if _intervals_overlap(start, end, existing.start_time, existing.end_time):
                return existing
        return None

    def _creation_guard(self, professional_id: str) -> ContextManager:
        if self._creation_locks is None:
            return nullcontext()
        return self._creation_locks.hold(professional_id)

    def _require_professional(self, professional_id: str) -> Professional:
        professional = self._professionals.get(professional_id)
        if professional is None:
            raise NotFoundError("professional", professional_id)
        return professional

    def _owned_slot(self, slot_id: str, professional_id: str) -> AvailabilitySlot:
        slot = self.get_slot(slot_id)
        if slot.professional_id != professional_id:
            raise UnauthorizedError(f"Slot {slot_id} belongs to another professional")
        return slot


def _check_time_range(start: time, end: time) -> None:
    if not start < end:
        raise InvalidTimeRangeError(start, end)
