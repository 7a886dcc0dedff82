"""
Booking endpoints
=================

POST  /api/v1/bookings                -- create a booking (always ``pending``)
GET   /api/v1/bookings                -- caller's bookings, newest first
GET   /api/v1/bookings/{id}           -- one of the caller's bookings
GET   /api/v1/bookings/{id}/history   -- committed status changes, in order
PATCH /api/v1/bookings/{id}/status    -- request a status transition

Ownership is checked before the per-booking lock is taken, so foreign and
unknown ids are reported as 404 even while the lock is held.  A transition is
committed before it is broadcast, and the broadcast runs as a background task
after the response; failed transitions never reach the push channel.
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis
from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_current_user, get_db, get_dispatcher
from src.api.middleware import limiter
from src.api.schemas import (
    BookingCreateRequest,
    BookingResponse,
    BookingStatusChangeResponse,
    StatusUpdateRequest,
)
from src.config import settings
from src.domain.entities import BookingNotFound, Identity
from src.domain.transitions import transition_engine
from src.infrastructure.locks import BookingLock
from src.infrastructure.redis_client import get_redis
from src.infrastructure.repositories import BookingRepository
from src.realtime.dispatcher import BroadcastDispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post(
    "",
    status_code=201,
    response_model=BookingResponse,
    summary="Create a booking",
)
@limiter.limit("100/minute")
async def create_booking(
    request: Request,
    body: BookingCreateRequest,
    identity: Identity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    booking = await BookingRepository(db).create(
        identity.id, body.model_dump(mode="json")
    )
    logger.info("Booking %d created by user %d", booking.id, identity.id)
    return booking


@router.get(
    "",
    response_model=list[BookingResponse],
    summary="List the caller's bookings, newest first",
)
@limiter.limit("100/minute")
async def list_bookings(
    request: Request,
    identity: Identity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await BookingRepository(db).list_for_owner(identity.id)


async def _owned_booking(repo: BookingRepository, booking_id: int, identity: Identity):
    booking = await repo.get_by_id(booking_id)
    if booking is None or booking.owner_id != identity.id:
        raise BookingNotFound(booking_id)
    return booking


@router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Get one booking",
)
@limiter.limit("100/minute")
async def get_booking(
    request: Request,
    booking_id: int,
    identity: Identity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _owned_booking(BookingRepository(db), booking_id, identity)


@router.get(
    "/{booking_id}/history",
    response_model=list[BookingStatusChangeResponse],
    summary="Committed status changes of a booking",
)
@limiter.limit("100/minute")
async def get_booking_history(
    request: Request,
    booking_id: int,
    identity: Identity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    repo = BookingRepository(db)
    await _owned_booking(repo, booking_id, identity)
    return await repo.history(booking_id)


@router.patch(
    "/{booking_id}/status",
    response_model=BookingResponse,
    summary="Request a status transition",
    description=(
        "Allowed: pending -> accepted | rejected | cancelled, "
        "accepted -> in_transit, in_transit -> completed. "
        "Every live push-channel connection is notified of the new status."
    ),
    responses={404: {"description": "Unknown booking"}, 409: {"description": "Illegal transition"}},
)
@limiter.limit("100/minute")
async def update_booking_status(
    request: Request,
    booking_id: int,
    body: StatusUpdateRequest,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: aioredis.Redis = Depends(get_redis),
    dispatcher: BroadcastDispatcher = Depends(get_dispatcher),
):
    repo = BookingRepository(db)
    await _owned_booking(repo, booking_id, identity)

    async with BookingLock(redis, booking_id, settings.booking_lock_ttl_seconds):
        current = await repo.get_by_id(booking_id)
        proposed = transition_engine.attempt_transition(
            current, body.status, identity.id
        )
        committed = await repo.commit_transition(
            booking_id,
            proposed.status,
            proposed.updated_at,
            expected_status=current.status,
        )
        await db.commit()

    logger.info(
        "Booking %d: %s -> %s by user %d",
        booking_id,
        current.status.value,
        committed.status.value,
        identity.id,
    )
    background_tasks.add_task(dispatcher.broadcast_status_changed, committed)
    return committed
