"""Builders for the JSON objects sent over the push channel."""

from __future__ import annotations

from typing import Any

from src.api.schemas import BookingResponse
from src.domain.entities import Booking, Identity
from src.domain.enums import MessageType


def connected(identity: Identity) -> dict[str, Any]:
    return {
        "type": MessageType.CONNECTED.value,
        "message": "Connected to tracking server",
        "user": {"id": identity.id, "username": identity.username},
    }


def booking_status_updated(booking: Booking) -> dict[str, Any]:
    return {
        "type": MessageType.BOOKING_STATUS_UPDATED.value,
        "booking": BookingResponse.model_validate(booking).model_dump(mode="json"),
    }


def location_update(lat: float, lng: float) -> dict[str, Any]:
    return {
        "type": MessageType.LOCATION_UPDATE.value,
        "data": {"lat": lat, "lng": lng},
    }
