"""Shared test fixtures and helpers."""

from datetime import date, datetime, time, timedelta
from typing import Optional

import pytest

from booking_core.config import AppConfig
from booking_core.events import BookingCreated, BookingStatusChanged, EventPublisher
from booking_core.schemas.actor_schema import Actor, Professional, Role
from booking_core.store.memory_store import InMemorySlotRepository
from booking_core.wiring import build_booking_system

PRO_ID = "PRO-1"
PRO_USER = "user-pro-1"
OTHER_PRO_ID = "PRO-2"
OTHER_PRO_USER = "user-pro-2"
CLIENT_A = "client-a"
CLIENT_B = "client-b"

SLOT_DATE = date(2025, 1, 10)


class FixedClock:
    """Controllable replacement for datetime.now()."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class LoadSaveSlotRepository(InMemorySlotRepository):
    """A repository that can only load and save whole records."""

    supports_conditional_update = False

    def update_if(self, slot_id, expected_status, **fields):
        raise AssertionError("conditional update must not be used")


@pytest.fixture
def clock():
    return FixedClock(datetime(2025, 1, 1, 8, 0))


@pytest.fixture
def events():
    return []


@pytest.fixture
def publisher(events):
    publisher = EventPublisher()
    publisher.subscribe(BookingCreated, events.append)
    publisher.subscribe(BookingStatusChanged, events.append)
    return publisher


@pytest.fixture
def config():
    return AppConfig()


def seed_professionals(system) -> None:
    system.professionals.add(Professional(id=PRO_ID, user_id=PRO_USER, display_name="Dana"))
    system.professionals.add(Professional(id=OTHER_PRO_ID, user_id=OTHER_PRO_USER))


@pytest.fixture
def system(config, clock, publisher):
    system = build_booking_system(config, clock=clock, publisher=publisher)
    seed_professionals(system)
    return system


@pytest.fixture
def pro_actor():
    return Actor(id=PRO_USER, role=Role.PROFESSIONAL)


@pytest.fixture
def client_a():
    return Actor(id=CLIENT_A, role=Role.CLIENT)


@pytest.fixture
def client_b():
    return Actor(id=CLIENT_B, role=Role.CLIENT)


@pytest.fixture
def open_slot(system):
    return system.availability.create_slot(PRO_ID, SLOT_DATE, time(9), time(10))


def make_booking(system, slot_id: str, client_id: str = CLIENT_A, details: Optional[str] = None):
    """Helper to create a PENDING booking for PRO_ID's slot."""
    return system.lifecycle.create_booking(client_id, PRO_ID, slot_id, details)
