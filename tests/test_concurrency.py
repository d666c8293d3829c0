"""Races between concurrent callers: exactly one winner per slot or booking."""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import time

import pytest

from booking_core.errors import (
    InvalidStateTransitionError,
    NotFoundError,
    OverlappingSlotError,
    SlotBookedError,
    SlotNotAvailableError,
)
from booking_core.schemas.actor_schema import Actor
from booking_core.schemas.booking_schema import ACTIVE_STATUSES, BookingStatus
from booking_core.schemas.slot_schema import SlotStatus
from booking_core.wiring import build_booking_system
from tests.conftest import PRO_ID, SLOT_DATE, LoadSaveSlotRepository, seed_professionals


def _race(count, fn):
    """Run ``fn(i)`` on ``count`` threads released together; return (results, errors)."""
    barrier = threading.Barrier(count)

    def run(i):
        barrier.wait()
        try:
            return fn(i), None
        except Exception as exc:
            return None, exc

    with ThreadPoolExecutor(max_workers=count) as pool:
        outcomes = list(pool.map(run, range(count)))
    results = [r for r, e in outcomes if e is None]
    errors = [e for r, e in outcomes if e is not None]
    return results, errors


def _assert_single_winner(system, slot_id, results, errors, count):
    assert len(results) == 1
    assert len(errors) == count - 1
    assert all(isinstance(e, SlotNotAvailableError) for e in errors)
    assert system.slots.get(slot_id).status == SlotStatus.BOOKED
    active = system.bookings.query(slot_id=slot_id, statuses=ACTIVE_STATUSES)
    assert [b.id for b in active] == [results[0].id]


class TestConcurrentBooking:
    @pytest.mark.parametrize("count", [2, 8, 32])
    def test_exactly_one_booking_wins(self, system, open_slot, count):
        results, errors = _race(
            count,
            lambda i: system.lifecycle.create_booking(f"client-{i}", PRO_ID, open_slot.id),
        )
        _assert_single_winner(system, open_slot.id, results, errors, count)

    def test_exactly_one_wins_without_conditional_update(self, config, clock, publisher):
        system = build_booking_system(
            config, clock=clock, publisher=publisher, slots=LoadSaveSlotRepository()
        )
        seed_professionals(system)
        slot = system.availability.create_slot(PRO_ID, SLOT_DATE, time(9), time(10))

        results, errors = _race(
            16, lambda i: system.lifecycle.create_booking(f"client-{i}", PRO_ID, slot.id)
        )
        _assert_single_winner(system, slot.id, results, errors, 16)

    def test_rebooking_after_cancel_race(self, system, open_slot):
        first = system.lifecycle.create_booking("client-0", PRO_ID, open_slot.id)
        system.lifecycle.cancel_booking(first.id, Actor(id="client-0"))

        results, errors = _race(
            8, lambda i: system.lifecycle.create_booking(f"client-{i + 1}", PRO_ID, open_slot.id)
        )
        _assert_single_winner(system, open_slot.id, results, errors, 8)


class TestConcurrentTransitions:
    def test_concurrent_cancel_once(self, system, open_slot, client_a, events):
        booking = system.lifecycle.create_booking(client_a.id, PRO_ID, open_slot.id)
        events.clear()

        results, errors = _race(8, lambda i: system.lifecycle.cancel_booking(booking.id, client_a))

        assert len(results) == 1
        assert all(isinstance(e, InvalidStateTransitionError) for e in errors)
        assert system.bookings.get(booking.id).status == BookingStatus.CANCELLED
        assert system.slots.get(open_slot.id).status == SlotStatus.OPEN
        assert len(events) == 1

    def test_cancel_races_new_booking(self, system, open_slot, client_a):
        booking = system.lifecycle.create_booking(client_a.id, PRO_ID, open_slot.id)

        def step(i):
            if i == 0:
                return system.lifecycle.cancel_booking(booking.id, client_a)
            return system.lifecycle.create_booking(f"client-{i}", PRO_ID, open_slot.id)

        _race(6, step)

        active = system.bookings.query(slot_id=open_slot.id, statuses=ACTIVE_STATUSES)
        slot = system.slots.get(open_slot.id)
        assert system.bookings.get(booking.id).status == BookingStatus.CANCELLED
        assert len(active) <= 1
        assert (slot.status == SlotStatus.BOOKED) == (len(active) == 1)


class TestConcurrentAvailability:
    def test_overlapping_creates_one_wins(self, system):
        results, errors = _race(
            8, lambda i: system.availability.create_slot(PRO_ID, SLOT_DATE, time(9), time(10))
        )
        assert len(results) == 1
        assert all(isinstance(e, OverlappingSlotError) for e in errors)
        assert len(system.availability.list_slots_by_date(PRO_ID, SLOT_DATE)) == 1

    def test_delete_races_booking(self, system, open_slot):
        def step(i):
            if i == 0:
                return system.availability.delete_slot(open_slot.id)
            return system.lifecycle.create_booking(f"client-{i}", PRO_ID, open_slot.id)

        _, errors = _race(4, step)

        slot = system.slots.get(open_slot.id)
        bookings = system.bookings.query(slot_id=open_slot.id)
        if slot is None:
            assert bookings == []
        else:
            assert slot.status == SlotStatus.BOOKED
            assert len(bookings) == 1
        for e in errors:
            assert isinstance(e, (SlotBookedError, SlotNotAvailableError, NotFoundError))


class ReadHookSlotRepository(LoadSaveSlotRepository):
    """Runs ``on_get`` once, right after the next read."""

    on_get = None

    def get(self, slot_id):
        slot = super().get(slot_id)
        hook, self.on_get = self.on_get, None
        if hook is not None:
            hook()
        return slot


class TestLockedFallbackEdits:
    @pytest.fixture
    def fallback_system(self, config, clock, publisher):
        system = build_booking_system(
            config, clock=clock, publisher=publisher, slots=ReadHookSlotRepository()
        )
        seed_professionals(system)
        return system

    @pytest.mark.parametrize("edit", ["delete", "move"])
    def test_edit_cannot_slip_between_read_and_save(self, fallback_system, edit):
        system = fallback_system
        slot = system.availability.create_slot(PRO_ID, SLOT_DATE, time(9), time(10))
        outcome = []

        def run_edit():
            try:
                if edit == "delete":
                    system.availability.delete_slot(slot.id)
                else:
                    system.availability.update_slot(slot.id, PRO_ID, SLOT_DATE, time(15), time(16))
                outcome.append("applied")
            except SlotBookedError:
                outcome.append("rejected")

        worker = threading.Thread(target=run_edit)

        def start_edit_mid_reserve():
            worker.start()
            worker.join(timeout=0.2)

        system.slots.on_get = start_edit_mid_reserve
        assert system.coordinator.reserve(slot.id)
        worker.join()

        stored = system.slots.get(slot.id)
        assert outcome == ["rejected"]
        assert stored.status == SlotStatus.BOOKED
        assert (stored.start_time, stored.end_time) == (time(9), time(10))
