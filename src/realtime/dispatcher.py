"""
Broadcast dispatcher
====================

Invoked after a status transition has been committed.  Every registered
connection receives the update, not only the booking owner's: delivery is
global on purpose, and narrowing it to owners is a product decision.

Delivery is best-effort.  Sends run concurrently, each bounded by a timeout;
a failing or slow connection is logged and skipped so it can neither delay
the others nor surface as an error to the request that made the transition.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from src.config import settings
from src.domain.entities import Booking
from src.realtime import messages
from src.realtime.errors import TransportFailure
from src.realtime.registry import SubscriptionRegistry

logger = logging.getLogger(__name__)


class BroadcastDispatcher:
    def __init__(
        self,
        registry: SubscriptionRegistry,
        send_timeout: float = settings.broadcast_send_timeout_seconds,
    ):
        self.registry = registry
        self.send_timeout = send_timeout

    async def broadcast_status_changed(self, booking: Booking) -> int:
        """Push ``BOOKING_STATUS_UPDATED`` to all live connections.

        Returns the number of connections the event was delivered to.
        """
        return await self.broadcast(messages.booking_status_updated(booking))

    async def broadcast(self, message: dict[str, Any]) -> int:
        handles = self.registry.all_handles()
        if not handles:
            return 0
        results = await asyncio.gather(
            *(self._send(handle, message) for handle in handles),
            return_exceptions=True,
        )
        delivered = 0
        for handle, result in zip(handles, results):
            if isinstance(result, BaseException):
                logger.warning(
                    "Dropping %s for connection %r: %s",
                    message.get("type"),
                    handle,
                    result,
                )
            else:
                delivered += 1
        logger.info(
            "Broadcast %s to %d/%d connections",
            message.get("type"),
            delivered,
            len(handles),
        )
        return delivered

    async def _send(self, handle: Any, message: dict[str, Any]) -> None:
        try:
            await asyncio.wait_for(handle.send_json(message), timeout=self.send_timeout)
        except Exception as exc:
            raise TransportFailure(str(exc) or exc.__class__.__name__) from exc
