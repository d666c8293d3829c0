"""
Command-line driver for the booking core.

Runs scripted flows against the configured store so the reservation
guarantees can be watched end to end without an API layer.

Usage:
    python main.py scenario
    python main.py race --clients 16
    python main.py reconcile
"""

import argparse
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from datetime import date, time, timedelta
from threading import Barrier

from booking_core.config import settings
from booking_core.errors import SlotNotAvailableError
from booking_core.events import BookingCreated, BookingStatusChanged
from booking_core.logging_context import request_scope
from booking_core.schemas.actor_schema import Actor, Professional, Role
from booking_core.schemas.booking_schema import BookingStatus
from booking_core.schemas.slot_schema import SlotStatus
from booking_core.wiring import BookingSystem, build_booking_system

logger = logging.getLogger(__name__)

PROFESSIONAL = Professional(id="PRO-1", user_id="user-pro-1", display_name="Dana Plumbing")
PRO_ACTOR = Actor(id="user-pro-1", role=Role.PROFESSIONAL)


def _setup() -> BookingSystem:
    system = build_booking_system(settings)
    system.professionals.add(PROFESSIONAL)
    system.publisher.subscribe(BookingCreated, lambda e: print(f"  event: created {e.booking_id}"))
    system.publisher.subscribe(
        BookingStatusChanged,
        lambda e: print(f"  event: {e.booking_id} {e.from_status.value} -> {e.to_status.value}"),
    )
    return system


def _next_day() -> date:
    return date.today() + timedelta(days=1)


def run_scenario() -> int:
    """Book, lose a race, confirm, cancel, rebook."""
    system = _setup()
    slot = system.availability.create_slot(PROFESSIONAL.id, _next_day(), time(9), time(10))
    print(f"slot {slot.id} {slot.date} {slot.start_time}-{slot.end_time} {slot.status.value}")

    with request_scope("REQ-client-a"):
        first = system.lifecycle.create_booking("client-a", PROFESSIONAL.id, slot.id, "Leaking tap")
    print(f"client-a booked {first.id} ({first.status.value})")

    with request_scope("REQ-client-b"):
        try:
            system.lifecycle.create_booking("client-b", PROFESSIONAL.id, slot.id)
        except SlotNotAvailableError as exc:
            print(f"client-b rejected: {exc}")

    system.lifecycle.update_status(first.id, PRO_ACTOR, BookingStatus.CONFIRMED)
    system.lifecycle.cancel_booking(first.id, PRO_ACTOR)
    print(f"slot after cancel: {system.availability.get_slot(slot.id).status.value}")

    with request_scope("REQ-client-b-retry"):
        second = system.lifecycle.create_booking("client-b", PROFESSIONAL.id, slot.id)
    print(f"client-b booked {second.id} ({second.status.value})")
    return 0


def run_race(clients: int) -> int:
    """Fire ``clients`` concurrent bookings at one slot and report the winners."""
    system = _setup()
    slot = system.availability.create_slot(PROFESSIONAL.id, _next_day(), time(14), time(15))
    barrier = Barrier(clients)

    def attempt(index: int) -> bool:
        barrier.wait()
        with request_scope(f"REQ-race-{index}"):
            try:
                system.lifecycle.create_booking(f"client-{index}", PROFESSIONAL.id, slot.id)
                return True
            except SlotNotAvailableError:
                return False

    with ThreadPoolExecutor(max_workers=clients) as pool:
        outcomes = list(pool.map(attempt, range(clients)))

    winners = sum(outcomes)
    active = system.queries.is_slot_booked(slot.id)
    status = system.availability.get_slot(slot.id).status
    print(f"{clients} clients, {winners} winner(s), slot {status.value}, active booking: {active}")
    return 0 if winners == 1 and status == SlotStatus.BOOKED else 1


def run_reconcile() -> int:
    system = build_booking_system(settings)
    report = system.reconciler.reconcile()
    print(f"released={report.released} reclaimed={report.reclaimed} skipped={report.skipped}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Drive the slot reservation core from the shell.")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("scenario", help="Run the book/confirm/cancel/rebook walkthrough.")
    race = sub.add_parser("race", help="Race concurrent clients for one slot.")
    race.add_argument("--clients", type=int, default=8, help="Number of concurrent clients.")
    sub.add_parser("reconcile", help="Repair slot/booking drift in the configured store.")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "scenario":
        return run_scenario()
    if args.command == "race":
        if args.clients < 2:
            parser.error("--clients must be at least 2")
        return run_race(args.clients)
    return run_reconcile()


if __name__ == "__main__":
    sys.exit(main())
