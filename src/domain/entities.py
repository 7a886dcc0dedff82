"""
Domain entities and errors.

``Booking`` is a plain snapshot: the only way to obtain a booking with a
different status is through
:class:`~src.domain.transitions.StatusTransitionEngine`, which returns a new
snapshot instead of mutating the old one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from .enums import BookingStatus, UserRole


class BookingError(Exception):
    """Base class for booking command failures."""


class BookingNotFound(BookingError):
    """Raised when a booking does not exist or is not owned by the requester."""

    def __init__(self, booking_id: Optional[int]):
        self.booking_id = booking_id
        super().__init__(f"Booking {booking_id} not found")


class InvalidTransition(BookingError):
    """Raised when a status change violates the state machine."""

    def __init__(self, current: BookingStatus, requested: BookingStatus):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot transition booking from {current.value} to {requested.value}"
        )


class BookingLocked(BookingError):
    """Raised when another request is already transitioning the booking."""

    def __init__(self, booking_id: int):
        self.booking_id = booking_id
        super().__init__(f"Booking {booking_id} is being updated, retry shortly")


# ── Entities ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Identity:
    """An authenticated caller, as resolved from a session token."""

    id: int
    username: str
    role: UserRole = UserRole.CUSTOMER


@dataclass(frozen=True)
class Booking:
    id: Optional[int] = None
    owner_id: int = 0
    status: BookingStatus = BookingStatus.PENDING
    vehicle_type: str = ""
    pickup_location: str = ""
    dropoff_location: str = ""
    pickup_coords: str = ""
    dropoff_coords: str = ""
    estimated_price: Optional[str] = None
    actual_price: Optional[str] = None
    distance: Optional[str] = None
    duration: Optional[str] = None
    notes: Optional[str] = None
    updated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def payload(self) -> dict[str, Any]:
        """Descriptive fields the state machine never reads."""
        return {
            "vehicle_type": self.vehicle_type,
            "pickup_location": self.pickup_location,
            "dropoff_location": self.dropoff_location,
            "pickup_coords": self.pickup_coords,
            "dropoff_coords": self.dropoff_coords,
            "estimated_price": self.estimated_price,
            "actual_price": self.actual_price,
            "distance": self.distance,
            "duration": self.duration,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class BookingStatusChange:
    booking_id: int
    from_status: Optional[BookingStatus]
    to_status: BookingStatus
    changed_at: Optional[datetime] = None
    id: Optional[int] = None


@dataclass(eq=False)
class Subscription:
    """One live push-channel connection."""

    identity: int
    handle: Any
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
