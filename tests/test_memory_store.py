"""Tests for the dict-backed repositories."""

from datetime import datetime, time

import pytest

from booking_core.schemas.actor_schema import Professional
from booking_core.schemas.slot_schema import AvailabilitySlot, SlotStatus
from booking_core.store.memory_store import (
    InMemoryProfessionalDirectory,
    InMemorySlotRepository,
)
from tests.conftest import PRO_ID, PRO_USER, SLOT_DATE


class TestProfessionalDirectory:
    @pytest.fixture
    def directory(self):
        directory = InMemoryProfessionalDirectory()
        directory.add(Professional(id=PRO_ID, user_id=PRO_USER))
        return directory

    def test_returned_record_is_a_copy(self, directory):
        directory.get(PRO_ID).user_id = "someone-else"
        assert directory.get(PRO_ID).user_id == PRO_USER

    def test_added_record_is_a_copy(self):
        directory = InMemoryProfessionalDirectory()
        original = Professional(id="PRO-9", user_id="user-9")
        returned = directory.add(original)
        original.user_id = "changed"
        returned.user_id = "changed-too"
        assert directory.get("PRO-9").user_id == "user-9"

    def test_find_by_user_is_a_copy(self, directory):
        directory.find_by_user(PRO_USER).display_name = "Renamed"
        assert directory.get(PRO_ID).display_name is None

    def test_unknown(self, directory):
        assert directory.get("PRO-404") is None
        assert directory.find_by_user("nobody") is None


class TestSlotRepository:
    def test_get_returns_copy(self):
        repo = InMemorySlotRepository(lock_shards=2)
        repo.add(AvailabilitySlot(
            id="SL-1", professional_id=PRO_ID, date=SLOT_DATE,
            start_time=time(9), end_time=time(10), created_at=datetime(2025, 1, 1),
        ))
        repo.get("SL-1").status = SlotStatus.BOOKED
        assert repo.get("SL-1").status == SlotStatus.OPEN

    def test_duplicate_id_rejected(self):
        repo = InMemorySlotRepository(lock_shards=2)
        slot = AvailabilitySlot(
            id="SL-1", professional_id=PRO_ID, date=SLOT_DATE,
            start_time=time(9), end_time=time(10), created_at=datetime(2025, 1, 1),
        )
        repo.add(slot)
        with pytest.raises(ValueError):
            repo.add(slot)
