"""Domain enumerations and state-transition rules."""

import enum


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_TRANSIT = "in_transit"
    COMPLETED = "completed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


# State machine: maps current status -> set of valid next statuses
BOOKING_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {BookingStatus.ACCEPTED, BookingStatus.REJECTED, BookingStatus.CANCELLED}
    ),
    BookingStatus.ACCEPTED: frozenset({BookingStatus.IN_TRANSIT}),
    BookingStatus.IN_TRANSIT: frozenset({BookingStatus.COMPLETED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.REJECTED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

INITIAL_STATUS = BookingStatus.PENDING

TERMINAL_STATUSES = frozenset(
    status for status, targets in BOOKING_TRANSITIONS.items() if not targets
)


class VehicleType(str, enum.Enum):
    VAN_3_5 = "van-3.5"
    TRUCK_7_5 = "truck-7.5"
    TRUCK_18 = "truck-18"


class UserRole(str, enum.Enum):
    CUSTOMER = "customer"
    DRIVER = "driver"


class MessageType(str, enum.Enum):
    """Push-channel message types (server -> client)."""

    CONNECTED = "CONNECTED"
    BOOKING_STATUS_UPDATED = "BOOKING_STATUS_UPDATED"
    LOCATION_UPDATE = "LOCATION_UPDATE"
