"""Tests for shared utility functions and striped locks."""

import threading
from datetime import date

import pytest

from booking_core.locks import KeyedLock
from booking_core.utils import (
    dates_between,
    dates_for_weekdays,
    enumerate_dates,
    new_id,
    weekly_recurrence,
)


class TestDates:
    def test_dates_between_is_inclusive(self):
        assert dates_between(date(2025, 1, 30), date(2025, 2, 1)) == [
            date(2025, 1, 30), date(2025, 1, 31), date(2025, 2, 1),
        ]

    def test_dates_between_single_day(self):
        assert dates_between(date(2025, 3, 3), date(2025, 3, 3)) == [date(2025, 3, 3)]

    def test_dates_for_weekdays(self):
        # 2025-01-06 is a Monday
        found = dates_for_weekdays(date(2025, 1, 6), date(2025, 1, 12), [0, 2])
        assert found == [date(2025, 1, 6), date(2025, 1, 8)]

    def test_weekly_recurrence(self):
        assert weekly_recurrence([date(2025, 1, 6)], 3) == [
            date(2025, 1, 6), date(2025, 1, 13), date(2025, 1, 20),
        ]

    def test_enumerate_dates_combines_filters(self):
        found = enumerate_dates(date(2025, 1, 6), date(2025, 1, 8), weekdays=[1], recurrence_weeks=2)
        assert found == [date(2025, 1, 7), date(2025, 1, 14)]


class TestNewId:
    def test_prefix(self):
        assert new_id("BK").startswith("BK-")

    def test_unique(self):
        assert len({new_id("SL") for _ in range(500)}) == 500


class TestKeyedLock:
    def test_rejects_zero_shards(self):
        with pytest.raises(ValueError):
            KeyedLock(0)

    def test_same_key_same_lock(self):
        locks = KeyedLock(8)
        assert locks.lock_for("SL-1") is locks.lock_for("SL-1")

    def test_hold_excludes_other_threads(self):
        locks = KeyedLock(4)
        counter = {"value": 0}

        def bump():
            for _ in range(1000):
                with locks.hold("shared"):
                    current = counter["value"]
                    counter["value"] = current + 1

        threads = [threading.Thread(target=bump) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert counter["value"] == 8000
