"""
Booking command client and live view.

``BookingClient`` wraps the HTTP command surface.  Before sending a status
change it runs the same transition table the server uses, purely as an
optimistic pre-check: the server remains the authority and may still reject.

``BookingView`` folds push-channel messages into local state.  Status
updates are broadcast to every client, so the view only applies updates for
bookings it already holds.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import urlencode, urlsplit, urlunsplit

import httpx

from src.client.session import BackoffPolicy, ConnectionSession
from src.domain.entities import BookingError, BookingNotFound
from src.domain.enums import BookingStatus, MessageType
from src.domain.transitions import transition_engine

logger = logging.getLogger(__name__)


class CommandRejected(BookingError):
    """The server refused a command; ``detail`` is its human-readable reason."""

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(detail)


class BookingClient:
    def __init__(
        self,
        base_url: str,
        *,
        token: Optional[str] = None,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.http = http or httpx.AsyncClient(base_url=self.base_url)

    async def aclose(self) -> None:
        await self.http.aclose()

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        resp = await self.http.request(
            method, f"/api/v1{path}", headers=self._headers(), **kwargs
        )
        if resp.status_code == 404:
            raise BookingNotFound(None)
        if resp.is_error:
            try:
                detail = resp.json().get("detail", resp.reason_phrase)
            except ValueError:
                detail = resp.reason_phrase
            raise CommandRejected(resp.status_code, str(detail))
        return resp.json() if resp.content else None

    # ── Commands ──────────────────────────────────────────────────────

    async def login(self, username: str, password: str) -> dict[str, Any]:
        data = await self._request(
            "POST", "/login", json={"username": username, "password": password}
        )
        self.token = data["token"]
        return data

    async def create_booking(self, **payload: Any) -> dict[str, Any]:
        return await self._request("POST", "/bookings", json=payload)

    async def list_bookings(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/bookings")

    async def request_transition(
        self,
        booking_id: int,
        status: BookingStatus,
        current: Optional[BookingStatus] = None,
    ) -> dict[str, Any]:
        """PATCH a new status; *current*, when known, is pre-checked locally."""
        if current is not None:
            transition_engine.check(current, status)
        return await self._request(
            "PATCH",
            f"/bookings/{booking_id}/status",
            json={"status": BookingStatus(status).value},
        )

    # ── Push channel ──────────────────────────────────────────────────

    def channel_url(self) -> str:
        scheme, netloc, _, _, _ = urlsplit(self.base_url)
        ws_scheme = "wss" if scheme == "https" else "ws"
        query = urlencode({"token": self.token}) if self.token else ""
        return urlunsplit((ws_scheme, netloc, "/ws", query, ""))

    def open_session(
        self, view: "BookingView", policy: Optional[BackoffPolicy] = None
    ) -> ConnectionSession:
        session = ConnectionSession(self.channel_url(), view.handle, policy=policy)
        session.start()
        return session


class BookingView:
    def __init__(self, bookings: Optional[list[dict[str, Any]]] = None):
        self.bookings: dict[int, dict[str, Any]] = {}
        self.vehicle_location: Optional[dict[str, float]] = None
        self.connected_as: Optional[dict[str, Any]] = None
        if bookings:
            self.replace(bookings)

    def replace(self, bookings: list[dict[str, Any]]) -> None:
        self.bookings = {b["id"]: b for b in bookings}

    def latest(self) -> Optional[dict[str, Any]]:
        if not self.bookings:
            return None
        return self.bookings[max(self.bookings)]

    def handle(self, message: dict[str, Any]) -> None:
        kind = message.get("type")
        if kind == MessageType.CONNECTED.value:
            self.connected_as = message.get("user")
        elif kind == MessageType.BOOKING_STATUS_UPDATED.value:
            booking = message.get("booking") or {}
            if booking.get("id") in self.bookings:
                self.bookings[booking["id"]] = booking
        elif kind == MessageType.LOCATION_UPDATE.value:
            self.vehicle_location = message.get("data")
        else:
            logger.debug("Ignoring push message of type %r", kind)
