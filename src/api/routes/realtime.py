"""
Push channel
============

WS /ws -- live booking status updates and simulated vehicle positions.

Handshake: the session token is read from the session cookie, or from the
``token`` query parameter for clients that cannot send cookies.  If no user
can be resolved the channel is closed straight away with code 4401 and reason
``unauthenticated``; the connection is only registered once a ``CONNECTED``
message has been sent.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, WebSocket

from src.api.dependencies import resolve_identity
from src.config import settings
from src.domain.entities import Identity
from src.infrastructure.database import async_session_factory
from src.infrastructure.repositories import UserRepository
from src.realtime import messages
from src.realtime.errors import UNAUTHENTICATED_CLOSE_CODE, UNAUTHENTICATED_REASON
from src.realtime.location_feed import LocationFeed
from src.realtime.registry import ConnectionHandle, SubscriptionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


async def authenticate_channel(websocket: WebSocket) -> Optional[Identity]:
    token = websocket.cookies.get(
        settings.session_cookie_name
    ) or websocket.query_params.get("token")
    async with async_session_factory() as session:
        return await resolve_identity(token, UserRepository(session))


@router.websocket("/ws")
async def booking_channel(websocket: WebSocket):
    registry: SubscriptionRegistry = websocket.app.state.registry

    await websocket.accept()
    identity = await authenticate_channel(websocket)
    if identity is None:
        logger.info("Rejected push-channel handshake: unauthenticated")
        await websocket.close(
            code=UNAUTHENTICATED_CLOSE_CODE, reason=UNAUTHENTICATED_REASON
        )
        return

    handle = ConnectionHandle(websocket)
    await handle.send_json(messages.connected(identity))
    registry.register(identity.id, handle)
    feed = LocationFeed(handle)
    feed.start()
    logger.info("User %d connected to push channel", identity.id)

    try:
        # Client frames, text or binary, are ignored until the disconnect.
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
    finally:
        await feed.stop()
        registry.unregister(handle)
        logger.info("User %d disconnected from push channel", identity.id)
