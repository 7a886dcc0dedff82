"""
Simulated vehicle position stream
=================================

Each connected channel gets its own feed that pushes a ``LOCATION_UPDATE``
every ``location_update_interval_seconds`` (default 2 s), jittered around a
configured centre.  The feed only shares the transport with status
broadcasts; it is not keyed through the subscription registry and it stops
on the first failed send, since that means the channel is gone.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Optional

from src.config import settings
from src.realtime import messages

logger = logging.getLogger(__name__)


class LocationFeed:
    def __init__(
        self,
        handle: Any,
        *,
        interval: float = settings.location_update_interval_seconds,
        center: tuple[float, float] = (
            settings.location_center_lat,
            settings.location_center_lng,
        ),
        jitter: float = settings.location_jitter,
        rng: Optional[random.Random] = None,
    ):
        self.handle = handle
        self.interval = interval
        self.center = center
        self.jitter = jitter
        self.rng = rng or random.Random()
        self._task: asyncio.Task | None = None
        self._stop_event: asyncio.Event | None = None

    # ── Public API ────────────────────────────────────────────────────

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._stop_event:
            self._stop_event.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sample(self) -> tuple[float, float]:
        lat, lng = self.center
        return (
            lat + (self.rng.random() - 0.5) * self.jitter,
            lng + (self.rng.random() - 0.5) * self.jitter,
        )

    # ── Internals ─────────────────────────────────────────────────────

    async def _loop(self) -> None:
        assert self._stop_event is not None
        while not self._stop_event.is_set():
            lat, lng = self.sample()
            try:
                await self.handle.send_json(messages.location_update(lat, lng))
            except Exception as exc:
                logger.debug("Location feed stopped for %r: %s", self.handle, exc)
                return
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
                break
            except asyncio.TimeoutError:
                pass  # next sample
