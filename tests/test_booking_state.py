"""Unit tests for the booking status state machine."""

from datetime import datetime, timezone
from itertools import product

import pytest

from src.domain.entities import Booking, BookingNotFound, InvalidTransition
from src.domain.enums import (
    BOOKING_TRANSITIONS,
    TERMINAL_STATUSES,
    BookingStatus,
)
from src.domain.transitions import StatusTransitionEngine

ALLOWED = {
    (BookingStatus.PENDING, BookingStatus.ACCEPTED),
    (BookingStatus.PENDING, BookingStatus.REJECTED),
    (BookingStatus.PENDING, BookingStatus.CANCELLED),
    (BookingStatus.ACCEPTED, BookingStatus.IN_TRANSIT),
    (BookingStatus.IN_TRANSIT, BookingStatus.COMPLETED),
}

FIXED_NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    return StatusTransitionEngine(clock=lambda: FIXED_NOW)


class TestTransitionTable:
    def test_initial_status_is_pending(self):
        assert Booking().status == BookingStatus.PENDING

    def test_table_matches_documented_edges(self):
        edges = {
            (src, dst) for src, targets in BOOKING_TRANSITIONS.items() for dst in targets
        }
        assert edges == ALLOWED

    def test_terminal_statuses(self):
        assert TERMINAL_STATUSES == {
            BookingStatus.COMPLETED,
            BookingStatus.REJECTED,
            BookingStatus.CANCELLED,
        }

    def test_nothing_reenters_pending(self):
        assert all(dst != BookingStatus.PENDING for _, dst in ALLOWED)


class TestAttemptTransition:
    # ── Valid transitions ─────────────────────────────────────────

    @pytest.mark.parametrize("current,requested", sorted(ALLOWED))
    def test_allowed_edge_succeeds(self, engine, current, requested):
        booking = Booking(id=1, owner_id=7, status=current)
        updated = engine.attempt_transition(booking, requested, requester_id=7)
        assert updated.status == requested
        assert updated.updated_at == FIXED_NOW

    def test_input_snapshot_is_not_mutated(self, engine):
        booking = Booking(id=1, owner_id=7)
        engine.attempt_transition(booking, BookingStatus.ACCEPTED, requester_id=7)
        assert booking.status == BookingStatus.PENDING
        assert booking.updated_at is None

    def test_payload_is_carried_over(self, engine):
        booking = Booking(id=1, owner_id=7, vehicle_type="truck-18", notes="fragile")
        updated = engine.attempt_transition(booking, BookingStatus.ACCEPTED, 7)
        assert updated.payload == booking.payload

    # ── Invalid transitions ───────────────────────────────────────

    @pytest.mark.parametrize(
        "current,requested",
        sorted(set(product(BookingStatus, BookingStatus)) - ALLOWED),
    )
    def test_every_unlisted_pair_is_rejected(self, engine, current, requested):
        booking = Booking(id=1, owner_id=7, status=current)
        with pytest.raises(InvalidTransition):
            engine.attempt_transition(booking, requested, requester_id=7)

    def test_completed_to_accepted_fails(self, engine):
        booking = Booking(id=1, owner_id=7, status=BookingStatus.COMPLETED)
        with pytest.raises(InvalidTransition, match="completed to accepted"):
            engine.attempt_transition(booking, BookingStatus.ACCEPTED, 7)

    def test_skipping_accepted_fails(self, engine):
        booking = Booking(id=1, owner_id=7)
        with pytest.raises(InvalidTransition):
            engine.attempt_transition(booking, BookingStatus.IN_TRANSIT, 7)

    # ── Ownership ─────────────────────────────────────────────────

    def test_missing_booking_is_not_found(self, engine):
        with pytest.raises(BookingNotFound):
            engine.attempt_transition(None, BookingStatus.ACCEPTED, 7)

    def test_foreign_booking_is_not_found(self, engine):
        booking = Booking(id=1, owner_id=7)
        with pytest.raises(BookingNotFound):
            engine.attempt_transition(booking, BookingStatus.ACCEPTED, 8)

    def test_ownership_is_checked_before_the_edge(self, engine):
        """An illegal edge on someone else's booking still reports not-found."""
        booking = Booking(id=1, owner_id=7, status=BookingStatus.COMPLETED)
        with pytest.raises(BookingNotFound):
            engine.attempt_transition(booking, BookingStatus.ACCEPTED, 8)


class TestFold:
    @pytest.mark.parametrize(
        "targets,expected",
        [
            ([], BookingStatus.PENDING),
            ([BookingStatus.ACCEPTED], BookingStatus.ACCEPTED),
            (
                [BookingStatus.ACCEPTED, BookingStatus.IN_TRANSIT, BookingStatus.COMPLETED],
                BookingStatus.COMPLETED,
            ),
            ([BookingStatus.REJECTED], BookingStatus.REJECTED),
            ([BookingStatus.CANCELLED], BookingStatus.CANCELLED),
        ],
    )
    def test_fold_matches_sequential_application(self, engine, targets, expected):
        booking = Booking(id=1, owner_id=7)
        for target in targets:
            booking = engine.attempt_transition(booking, target, 7)
        assert booking.status == expected
        assert engine.fold(targets) == expected

    def test_fold_stops_at_first_illegal_target(self, engine):
        with pytest.raises(InvalidTransition):
            engine.fold([BookingStatus.ACCEPTED, BookingStatus.COMPLETED])

    def test_every_walk_ends_in_exactly_one_terminal_state(self, engine):
        """Walk the graph from pending; every maximal path ends in one terminal."""
        finals = set()
        stack = [(BookingStatus.PENDING,)]
        while stack:
            path = stack.pop()
            targets = engine.allowed_targets(path[-1])
            if not targets:
                assert engine.is_terminal(path[-1])
                assert sum(s in TERMINAL_STATUSES for s in path) == 1
                finals.add(path[-1])
                continue
            stack.extend(path + (t,) for t in targets)
        assert finals == TERMINAL_STATUSES


class TestHistory:
    def test_valid_history(self, engine):
        assert engine.is_valid_history(["pending", "accepted", "in_transit"])

    def test_history_must_start_pending(self, engine):
        assert not engine.is_valid_history(["accepted", "in_transit"])

    def test_history_with_skip_is_invalid(self, engine):
        assert not engine.is_valid_history(["pending", "in_transit"])

    def test_empty_history_is_invalid(self, engine):
        assert not engine.is_valid_history([])
