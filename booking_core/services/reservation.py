"""
Atomic claim and release of a single slot's occupancy.

``reserve`` and ``release`` each perform exactly one conditional update
against the slot repository, so of N concurrent reservers exactly one
sees ``True``. A plain load/check/save would leave a window where two
callers both observe OPEN; it is never used here unless the repository
cannot do a conditional update, in which case a per-slot-id lock stripe
makes the load/check/save indivisible within this process.

Edits and deletions of OPEN slots also go through the coordinator so
they share that per-slot serialization with reservations.
"""

from contextlib import contextmanager
from typing import Any, Iterator, Optional

from booking_core.errors import SlotNotAvailableError
from booking_core.locks import KeyedLock
from booking_core.logging_context import get_request_logger
from booking_core.schemas.slot_schema import SlotStatus
from booking_core.store.base import SlotRepository
from booking_core.utils import Clock, system_clock

logger = get_request_logger(__name__)


class SlotReservationCoordinator:
    """Linearizable per-slot OPEN <-> BOOKED transitions."""

    def __init__(
        self,
        slots: SlotRepository,
        clock: Optional[Clock] = None,
        lock_shards: int = 64,
    ) -> None:
        self._slots = slots
        self._clock = clock or system_clock
        self._locks: Optional[KeyedLock] = None
        if not slots.supports_conditional_update:
            self._locks = KeyedLock(lock_shards)
            logger.info(
                "%s has no conditional update; serializing reservations per slot id",
                type(slots).__name__,
            )

    def reserve(self, slot_id: str) -> bool:
        """Flip the slot OPEN -> BOOKED. True iff this call made the change."""
        won = self._transition(
            slot_id, SlotStatus.OPEN,
            status=SlotStatus.BOOKED, reserved_at=self._clock(),
        )
        if won:
            logger.info("Slot %s reserved", slot_id)
        else:
            logger.info("Slot %s not reserved: already booked or missing", slot_id)
        return won

    def release(self, slot_id: str) -> bool:
        """Flip the slot BOOKED -> OPEN. A second release is a logged no-op."""
        released = self._transition(
            slot_id, SlotStatus.BOOKED,
            status=SlotStatus.OPEN, reserved_at=None,
        )
        if released:
            logger.info("Slot %s released", slot_id)
        else:
            logger.warning("Slot %s was not BOOKED; release had no effect", slot_id)
        return released

    def update_if_open(self, slot_id: str, **fields: Any) -> bool:
        """Apply ``fields`` to an OPEN slot. False if it is BOOKED or gone."""
        return self._transition(slot_id, SlotStatus.OPEN, **fields)

    def delete_if_open(self, slot_id: str) -> bool:
        """Delete an OPEN slot. False if it is BOOKED or gone."""
        if self._locks is None:
            return self._slots.delete_if(slot_id, SlotStatus.OPEN)

        with self._locks.hold(slot_id):
            slot = self._slots.get(slot_id)
            if slot is None or slot.status != SlotStatus.OPEN:
                return False
            return self._slots.delete_if(slot_id, SlotStatus.OPEN)

    @contextmanager
    def claim(self, slot_id: str) -> Iterator[str]:
        """
        Reserve ``slot_id`` for the duration of the block.

        If the block raises, the reservation is released before the
        exception propagates, so no slot is left BOOKED without the
        record the block was supposed to create.

        Raises:
            SlotNotAvailableError: If the reservation is lost to another caller.
        """
        if not self.reserve(slot_id):
            raise SlotNotAvailableError(slot_id)
        try:
            yield slot_id
        except BaseException:
            logger.warning("Compensating reservation of slot %s", slot_id)
            self.release(slot_id)
            raise

    def _transition(self, slot_id: str, expected: SlotStatus, **fields: Any) -> bool:
        if self._locks is None:
            return self._slots.update_if(slot_id, expected, **fields)

        with self._locks.hold(slot_id):
            slot = self._slots.get(slot_id)
            if slot is None or slot.status != expected:
                return False
            self._slots.save(slot.model_copy(update=fields))
            return True
