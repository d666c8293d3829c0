"""Tests for the booking status transition table."""

import pytest

from booking_core.errors import InvalidStateTransitionError
from booking_core.schemas.booking_schema import TERMINAL_STATUSES, BookingStatus
from booking_core.services.state_machine import (
    TRANSITIONS,
    BookingParty,
    find_transition,
    is_terminal,
    valid_targets,
)


class TestTransitionTable:
    def test_no_duplicate_transitions(self):
        pairs = [(t.from_status, t.to_status) for t in TRANSITIONS]
        assert len(pairs) == len(set(pairs))

    def test_terminal_statuses_have_no_exits(self):
        for status in TERMINAL_STATUSES:
            assert valid_targets(status) == []
            assert is_terminal(status)

    def test_pending_targets(self):
        assert set(valid_targets(BookingStatus.PENDING)) == {
            BookingStatus.CONFIRMED, BookingStatus.REJECTED, BookingStatus.CANCELLED,
        }

    def test_confirmed_targets(self):
        assert set(valid_targets(BookingStatus.CONFIRMED)) == {
            BookingStatus.CANCELLED, BookingStatus.COMPLETED,
        }

    @pytest.mark.parametrize(
        "from_status,to_status,releases",
        [
            (BookingStatus.PENDING, BookingStatus.CONFIRMED, False),
            (BookingStatus.PENDING, BookingStatus.REJECTED, True),
            (BookingStatus.PENDING, BookingStatus.CANCELLED, True),
            (BookingStatus.CONFIRMED, BookingStatus.CANCELLED, True),
            (BookingStatus.CONFIRMED, BookingStatus.COMPLETED, False),
        ],
    )
    def test_slot_release_flags(self, from_status, to_status, releases):
        assert find_transition(from_status, to_status).releases_slot is releases

    def test_professional_only_decisions(self):
        for target in (BookingStatus.CONFIRMED, BookingStatus.REJECTED):
            t = find_transition(BookingStatus.PENDING, target)
            assert t.allowed_parties == frozenset({BookingParty.PROFESSIONAL})

    def test_either_party_may_cancel(self):
        t = find_transition(BookingStatus.CONFIRMED, BookingStatus.CANCELLED)
        assert BookingParty.CLIENT in t.allowed_parties
        assert BookingParty.PROFESSIONAL in t.allowed_parties


class TestRejectedTransitions:
    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            (BookingStatus.PENDING, BookingStatus.COMPLETED),
            (BookingStatus.PENDING, BookingStatus.PENDING),
            (BookingStatus.CONFIRMED, BookingStatus.PENDING),
            (BookingStatus.CONFIRMED, BookingStatus.REJECTED),
            (BookingStatus.CANCELLED, BookingStatus.PENDING),
            (BookingStatus.CANCELLED, BookingStatus.CANCELLED),
            (BookingStatus.COMPLETED, BookingStatus.CANCELLED),
            (BookingStatus.REJECTED, BookingStatus.CONFIRMED),
        ],
    )
    def test_not_in_table(self, from_status, to_status):
        with pytest.raises(InvalidStateTransitionError) as info:
            find_transition(from_status, to_status)
        assert info.value.from_status == from_status
        assert info.value.to_status == to_status
