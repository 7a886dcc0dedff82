"""
Booking status state machine.

The legal edges live in one table (``BOOKING_TRANSITIONS``).  The engine
checks ownership first, then the edge, and hands back a new snapshot; it
performs no I/O so it can be exercised exhaustively in unit tests.  Who may
trigger which edge (driver vs. customer) is a policy for the caller, not part
of the graph.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Iterable, Mapping, Optional

from .entities import Booking, BookingNotFound, InvalidTransition
from .enums import BOOKING_TRANSITIONS, INITIAL_STATUS, BookingStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StatusTransitionEngine:
    def __init__(
        self,
        transitions: Mapping[BookingStatus, frozenset[BookingStatus]] = BOOKING_TRANSITIONS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.transitions = transitions
        self.clock = clock

    def allowed_targets(self, current: BookingStatus) -> frozenset[BookingStatus]:
        return self.transitions.get(BookingStatus(current), frozenset())

    def is_allowed(self, current: BookingStatus, requested: BookingStatus) -> bool:
        return BookingStatus(requested) in self.allowed_targets(current)

    def is_terminal(self, status: BookingStatus) -> bool:
        return not self.allowed_targets(status)

    def check(self, current: BookingStatus, requested: BookingStatus) -> None:
        """Raise :class:`InvalidTransition` unless *current -> requested* is an edge."""
        if not self.is_allowed(current, requested):
            raise InvalidTransition(BookingStatus(current), BookingStatus(requested))

    def attempt_transition(
        self,
        booking: Optional[Booking],
        requested: BookingStatus,
        requester_id: int,
    ) -> Booking:
        """Return *booking* moved to *requested*, stamped with a new ``updated_at``.

        Unknown bookings and bookings owned by someone else are reported the
        same way (``BookingNotFound``) so callers cannot probe foreign ids.
        """
        if booking is None or booking.owner_id != requester_id:
            raise BookingNotFound(booking.id if booking else None)
        requested = BookingStatus(requested)
        self.check(booking.status, requested)
        return replace(booking, status=requested, updated_at=self.clock())

    def fold(
        self,
        targets: Iterable[BookingStatus],
        initial: BookingStatus = INITIAL_STATUS,
    ) -> BookingStatus:
        """Apply *targets* in order starting from *initial*; fail on the first bad edge."""
        status = BookingStatus(initial)
        for target in targets:
            self.check(status, target)
            status = BookingStatus(target)
        return status

    def is_valid_history(self, statuses: Iterable[BookingStatus]) -> bool:
        """True if *statuses* starts at the initial state and only walks legal edges."""
        history = [BookingStatus(s) for s in statuses]
        if not history or history[0] != INITIAL_STATUS:
            return False
        try:
            self.fold(history[1:], initial=history[0])
        except InvalidTransition:
            return False
        return True


transition_engine = StatusTransitionEngine()
