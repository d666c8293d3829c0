"""
Repair drift between slot status and the bookings that reference it.

Booking status is the source of truth. A BOOKED slot with no active
booking is released; an OPEN slot that an active booking references is
claimed again. Slots reserved within the grace window are left alone
because their booking may still be on its way to the store.

The first pass over bookings only nominates candidates. Each repair
re-reads the slot's bookings right before acting, and a reclaim holds the
booking's lock so it cannot interleave with a status change releasing
the same slot.
"""

import logging
from contextlib import nullcontext
from dataclasses import dataclass, field
from datetime import timedelta
from typing import ContextManager, Optional

from booking_core.locks import KeyedLock
from booking_core.schemas.booking_schema import ACTIVE_STATUSES, Booking
from booking_core.schemas.slot_schema import AvailabilitySlot, SlotStatus
from booking_core.services.reservation import SlotReservationCoordinator
from booking_core.store.base import BookingRepository, SlotRepository
from booking_core.utils import Clock, system_clock

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationReport:
    released: list[str] = field(default_factory=list)
    reclaimed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def changed(self) -> int:
        return len(self.released) + len(self.reclaimed)


class SlotReconciler:
    def __init__(
        self,
        slots: SlotRepository,
        bookings: BookingRepository,
        coordinator: SlotReservationCoordinator,
        clock: Optional[Clock] = None,
        grace_seconds: float = 300.0,
        booking_locks: Optional[KeyedLock] = None,
    ) -> None:
        self._slots = slots
        self._bookings = bookings
        self._coordinator = coordinator
        self._clock = clock or system_clock
        self._grace = timedelta(seconds=grace_seconds)
        self._booking_locks = booking_locks

    def reconcile(self, professional_id: Optional[str] = None) -> ReconciliationReport:
        report = ReconciliationReport()
        active_slot_ids = {
            b.slot_id
            for b in self._bookings.query(professional_id=professional_id, statuses=ACTIVE_STATUSES)
        }
        cutoff = self._clock() - self._grace

        for slot in self._slots.query(professional_id=professional_id):
            held = slot.id in active_slot_ids
            if slot.status == SlotStatus.BOOKED and not held:
                if slot.reserved_at is not None and slot.reserved_at > cutoff:
                    report.skipped.append(slot.id)
                    continue
                if self._release_orphan(slot):
                    report.released.append(slot.id)
            elif slot.status == SlotStatus.OPEN and held:
                if self._reclaim(slot):
                    report.reclaimed.append(slot.id)

        if report.changed:
            logger.warning(
                "Reconciliation repaired %d slot(s): released=%s reclaimed=%s",
                report.changed, report.released, report.reclaimed,
            )
        else:
            logger.info("Reconciliation found no drift (%d in grace window)", len(report.skipped))
        return report

    def _active_bookings(self, slot_id: str) -> list[Booking]:
        return self._bookings.query(slot_id=slot_id, statuses=ACTIVE_STATUSES)

    def _release_orphan(self, slot: AvailabilitySlot) -> bool:
        if self._active_bookings(slot.id):
            return False
        return self._coordinator.release(slot.id)

    def _reclaim(self, slot: AvailabilitySlot) -> bool:
        holders = self._active_bookings(slot.id)
        if not holders:
            logger.info("Slot %s lost its active booking before reclaim; left OPEN", slot.id)
            return False

        with self._guard(holders[0].id):
            if not self._active_bookings(slot.id):
                return False
            if not self._coordinator.reserve(slot.id):
                return False
            if self._active_bookings(slot.id):
                return True
            # Booking left the active set from another process mid-reclaim.
            self._coordinator.release(slot.id)
            return False

    def _guard(self, booking_id: str) -> ContextManager:
        if self._booking_locks is None:
            return nullcontext()
        return self._booking_locks.hold(booking_id)
