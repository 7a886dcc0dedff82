"""Pydantic request / response schemas for the REST API and push channel."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.domain.enums import BookingStatus, UserRole, VehicleType


# ── Requests ──────────────────────────────────────────────────────────


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=80)
    password: str = Field(..., min_length=1, max_length=128)
    full_name: str = Field(..., min_length=1, max_length=120)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", max_length=255)
    phone_number: str = Field(..., min_length=10, max_length=32)
    profile_image: Optional[str] = None
    role: UserRole = UserRole.CUSTOMER


class LoginRequest(BaseModel):
    username: str
    password: str


class BookingCreateRequest(BaseModel):
    vehicle_type: VehicleType
    pickup_location: str = Field(..., min_length=1)
    dropoff_location: str = Field(..., min_length=1)
    pickup_coords: str = Field(..., min_length=1, max_length=64)
    dropoff_coords: str = Field(..., min_length=1, max_length=64)
    estimated_price: Optional[str] = None
    distance: Optional[str] = None
    duration: Optional[str] = None
    notes: Optional[str] = None


class StatusUpdateRequest(BaseModel):
    status: BookingStatus


# ── Responses ─────────────────────────────────────────────────────────


class UserResponse(BaseModel):
    id: int
    username: str
    role: UserRole = UserRole.CUSTOMER

    model_config = {"from_attributes": True}


class LoginResponse(UserResponse):
    token: str


class BookingResponse(BaseModel):
    id: int
    owner_id: int
    status: BookingStatus
    vehicle_type: str
    pickup_location: str
    dropoff_location: str
    pickup_coords: str
    dropoff_coords: str
    estimated_price: Optional[str] = None
    actual_price: Optional[str] = None
    distance: Optional[str] = None
    duration: Optional[str] = None
    notes: Optional[str] = None
    updated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookingStatusChangeResponse(BaseModel):
    from_status: Optional[BookingStatus] = None
    to_status: BookingStatus
    changed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ConnectionsResponse(BaseModel):
    connections: int
    identities: int


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
