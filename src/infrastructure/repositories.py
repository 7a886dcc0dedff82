"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work).  The booking
repository hands out frozen :class:`~src.domain.entities.Booking` snapshots,
never live ORM rows, so nothing outside ``commit_transition`` can write a
status.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import BookingModel, BookingStatusChangeModel, UserModel
from src.domain.entities import (
    Booking,
    BookingNotFound,
    BookingStatusChange,
    Identity,
    InvalidTransition,
)
from src.domain.enums import INITIAL_STATUS, BookingStatus, UserRole
from src.domain.transitions import transition_engine

_PAYLOAD_FIELDS = (
    "vehicle_type",
    "pickup_location",
    "dropoff_location",
    "pickup_coords",
    "dropoff_coords",
    "estimated_price",
    "actual_price",
    "distance",
    "duration",
    "notes",
)


def to_booking(model: BookingModel) -> Booking:
    return Booking(
        id=model.id,
        owner_id=model.user_id,
        status=BookingStatus(model.status),
        updated_at=model.updated_at,
        created_at=model.created_at,
        **{name: getattr(model, name) for name in _PAYLOAD_FIELDS},
    )


class BookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, owner_id: int, payload: dict[str, Any]) -> Booking:
        """Insert a booking; the status is always forced to ``pending``."""
        now = datetime.now(timezone.utc)
        model = BookingModel(
            user_id=owner_id,
            status=INITIAL_STATUS,
            created_at=now,
            updated_at=now,
            **{k: v for k, v in payload.items() if k in _PAYLOAD_FIELDS},
        )
        self.session.add(model)
        await self.session.flush()
        self.session.add(
            BookingStatusChangeModel(
                booking_id=model.id,
                from_status=None,
                to_status=INITIAL_STATUS,
                changed_at=now,
            )
        )
        await self.session.flush()
        return to_booking(model)

    async def get_by_id(self, booking_id: int) -> Optional[Booking]:
        model = await self.session.get(
            BookingModel, booking_id, populate_existing=True
        )
        return to_booking(model) if model else None

    async def list_for_owner(self, owner_id: int) -> list[Booking]:
        result = await self.session.execute(
            select(BookingModel)
            .where(BookingModel.user_id == owner_id)
            .order_by(BookingModel.id.desc())
        )
        return [to_booking(m) for m in result.scalars().all()]

    async def commit_transition(
        self,
        booking_id: int,
        new_status: BookingStatus,
        timestamp: datetime,
        expected_status: Optional[BookingStatus] = None,
    ) -> Booking:
        """Write *new_status* atomically.

        The edge *expected_status -> new_status* must be in the transition
        table.  The UPDATE only matches while the row still holds
        *expected_status*, so a concurrent writer cannot be overwritten.
        Without *expected_status* the stored status is used.
        """
        if expected_status is None:
            current = await self.get_by_id(booking_id)
            if current is None:
                raise BookingNotFound(booking_id)
            expected_status = current.status
        transition_engine.check(expected_status, new_status)

        result = await self.session.execute(
            update(BookingModel)
            .where(
                BookingModel.id == booking_id,
                BookingModel.status == expected_status,
            )
            .values(status=new_status, updated_at=timestamp)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            current = await self.get_by_id(booking_id)
            if current is None:
                raise BookingNotFound(booking_id)
            raise InvalidTransition(current.status, BookingStatus(new_status))

        self.session.add(
            BookingStatusChangeModel(
                booking_id=booking_id,
                from_status=expected_status,
                to_status=new_status,
                changed_at=timestamp,
            )
        )
        await self.session.flush()
        committed = await self.get_by_id(booking_id)
        assert committed is not None
        return committed

    async def history(self, booking_id: int) -> list[BookingStatusChange]:
        result = await self.session.execute(
            select(BookingStatusChangeModel)
            .where(BookingStatusChangeModel.booking_id == booking_id)
            .order_by(BookingStatusChangeModel.id)
        )
        return [
            BookingStatusChange(
                id=row.id,
                booking_id=row.booking_id,
                from_status=BookingStatus(row.from_status) if row.from_status else None,
                to_status=BookingStatus(row.to_status),
                changed_at=row.changed_at,
            )
            for row in result.scalars().all()
        ]


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        *,
        username: str,
        password_hash: str,
        full_name: str | None = None,
        email: str | None = None,
        phone_number: str | None = None,
        profile_image: str | None = None,
        role: UserRole = UserRole.CUSTOMER,
    ) -> UserModel:
        user = UserModel(
            username=username,
            password_hash=password_hash,
            full_name=full_name,
            email=email,
            phone_number=phone_number,
            profile_image=profile_image,
            role=role,
        )
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: int) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id, populate_existing=True)

    async def get_by_username(self, username: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.username == username)
        )
        return result.scalar_one_or_none()

    async def get_identity(
        self, user_id: int, session_version: Optional[int] = None
    ) -> Optional[Identity]:
        """Identity for *user_id*; ``None`` if unknown or the session was ended."""
        user = await self.get_by_id(user_id)
        if user is None:
            return None
        if session_version is not None and session_version != user.session_version:
            return None
        return Identity(id=user.id, username=user.username, role=UserRole(user.role))

    async def end_sessions(self, user_id: int) -> None:
        """Invalidate every token issued to *user_id* so far."""
        await self.session.execute(
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(session_version=UserModel.session_version + 1)
            .execution_options(synchronize_session=False)
        )
