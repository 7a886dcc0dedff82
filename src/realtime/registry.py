"""
Subscription registry: identity -> live push-channel handles.

A single instance is created by the application factory and shared with the
dispatcher and the WebSocket endpoint; there is no module-level connection
set.  Mutations take an internal lock, so concurrent connect / disconnect for
the same identity can neither corrupt its handle set nor leak a handle.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Any, Hashable, Optional

from src.domain.entities import Subscription

logger = logging.getLogger(__name__)


class SubscriptionRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_identity: dict[Hashable, set[Any]] = defaultdict(set)
        self._by_handle: dict[Any, Subscription] = {}

    def register(self, identity: Hashable, handle: Any) -> Subscription:
        """Add *handle* under *identity*.  Re-registering a handle is a no-op."""
        with self._lock:
            existing = self._by_handle.get(handle)
            if existing is not None:
                return existing
            subscription = Subscription(identity=identity, handle=handle)
            self._by_handle[handle] = subscription
            self._by_identity[identity].add(handle)
        logger.debug("Registered connection for identity %s", identity)
        return subscription

    def unregister(self, handle: Any) -> Optional[Subscription]:
        """Remove *handle* wherever it is registered; tolerate repeat calls."""
        with self._lock:
            subscription = self._by_handle.pop(handle, None)
            if subscription is None:
                return None
            handles = self._by_identity.get(subscription.identity)
            if handles is not None:
                handles.discard(handle)
                if not handles:
                    del self._by_identity[subscription.identity]
        logger.debug("Unregistered connection for identity %s", subscription.identity)
        return subscription

    def handles_for(self, identity: Hashable) -> frozenset:
        with self._lock:
            return frozenset(self._by_identity.get(identity, ()))

    def all_handles(self) -> list[Any]:
        """Snapshot of every live handle, safe to iterate while others mutate."""
        with self._lock:
            return list(self._by_handle)

    def subscriptions(self) -> list[Subscription]:
        with self._lock:
            return list(self._by_handle.values())

    def identities(self) -> frozenset:
        with self._lock:
            return frozenset(self._by_identity)

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_handle)

    def __contains__(self, handle: Any) -> bool:
        with self._lock:
            return handle in self._by_handle


class ConnectionHandle:
    """Hashable wrapper around a server-side WebSocket.

    Starlette's ``WebSocket`` is a mapping and therefore unhashable, so the
    registry keys on this object instead.
    """

    __slots__ = ("websocket",)

    def __init__(self, websocket: Any):
        self.websocket = websocket

    async def send_json(self, data: Any) -> None:
        await self.websocket.send_json(data)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        await self.websocket.close(code=code, reason=reason)

    def __repr__(self) -> str:
        client = getattr(self.websocket, "client", None)
        return f"<ConnectionHandle {client}>"
