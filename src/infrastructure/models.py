"""
SQLAlchemy ORM models.

Tables
------
* ``users``                   -- customers and drivers
* ``bookings``                -- cargo transport requests
* ``booking_status_changes``  -- append-only log of committed transitions

Statuses are stored by *value* (``"in_transit"``), matching the wire format.
"""

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)

from .database import Base
from src.domain.enums import BookingStatus, UserRole


def _values(enum_cls):
    return [member.value for member in enum_cls]


def _status_type() -> Enum:
    return Enum(
        BookingStatus,
        name="booking_status",
        values_callable=_values,
        validate_strings=True,
    )


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(80), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(120), nullable=True)
    email = Column(String(255), nullable=True)
    phone_number = Column(String(32), nullable=True)
    profile_image = Column(Text, nullable=True)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=_values),
        default=UserRole.CUSTOMER,
        nullable=False,
    )
    # bumped on logout; tokens carry the version they were issued under
    session_version = Column(Integer, default=0, server_default="0", nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class BookingModel(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    vehicle_type = Column(String(32), nullable=False)
    pickup_location = Column(Text, nullable=False)
    dropoff_location = Column(Text, nullable=False)
    pickup_coords = Column(String(64), nullable=False)
    dropoff_coords = Column(String(64), nullable=False)
    estimated_price = Column(String(32), nullable=True)
    actual_price = Column(String(32), nullable=True)
    distance = Column(String(32), nullable=True)
    duration = Column(String(32), nullable=True)
    notes = Column(Text, nullable=True)

    status = Column(
        _status_type(), default=BookingStatus.PENDING, nullable=False
    )
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_bookings_user", "user_id"),
        Index("idx_bookings_status", "status"),
    )


class BookingStatusChangeModel(Base):
    __tablename__ = "booking_status_changes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False)
    from_status = Column(_status_type(), nullable=True)
    to_status = Column(_status_type(), nullable=False)
    changed_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("idx_status_changes_booking", "booking_id"),)
