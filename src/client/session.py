"""
Client push-channel session
===========================

One ``ConnectionSession`` per tab/consumer keeps a single channel to ``/ws``
open and reconnects with exponential backoff.

State machine
-------------
``disconnected -> connecting -> connected -> disconnected`` on loss, and
``closing`` (terminal) from any state once the owner calls :meth:`close`.

* The channel only counts as ``connected`` after the server's ``CONNECTED``
  message, i.e. once the handshake resolved an identity.
* After a failed attempt or an unexpected loss the next attempt waits
  ``min(base * 2**attempt, cap)`` ms; the counter resets on ``connected``.
* After ``max_attempts`` scheduled reconnects the session stays
  ``disconnected`` until :meth:`start` is called again.
* An ``unauthenticated`` close is handled like any other close.
"""

from __future__ import annotations

import asyncio
import enum
import inspect
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from src.config import settings
from src.domain.enums import MessageType
from src.realtime.errors import TransportFailure, Unauthenticated, UNAUTHENTICATED_CLOSE_CODE

logger = logging.getLogger(__name__)

MessageHandler = Callable[[dict[str, Any]], Union[None, Awaitable[None]]]
Connector = Callable[[str, dict[str, str]], Any]


class SessionState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSING = "closing"


@dataclass(frozen=True)
class BackoffPolicy:
    base_delay_ms: int = settings.reconnect_base_delay_ms
    max_delay_ms: int = settings.reconnect_max_delay_ms
    max_attempts: int = settings.reconnect_max_attempts

    def delay_ms(self, attempt: int) -> int:
        return min(self.base_delay_ms * 2**attempt, self.max_delay_ms)

    def schedule(self) -> list[int]:
        """Every delay this policy will ever wait, in order."""
        return [self.delay_ms(a) for a in range(self.max_attempts)]


def _default_connector(url: str, headers: dict[str, str]):
    return ws_connect(url, additional_headers=headers or None)


class ConnectionSession:
    def __init__(
        self,
        url: str,
        on_message: Optional[MessageHandler] = None,
        *,
        policy: Optional[BackoffPolicy] = None,
        headers: Optional[dict[str, str]] = None,
        connector: Optional[Connector] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.url = url
        self.on_message = on_message
        self.policy = policy or BackoffPolicy()
        self.headers = dict(headers or {})
        self._connector = connector or _default_connector
        self._sleep = sleep
        self._state = SessionState.DISCONNECTED
        self._attempt = 0
        self._channel: Any = None
        self._task: asyncio.Task | None = None
        self._closing = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def attempt(self) -> int:
        return self._attempt

    # ── Public API ────────────────────────────────────────────────────

    def start(self) -> None:
        """(Re)start the connect loop; a no-op while it is already running."""
        if self._task is not None and not self._task.done():
            return
        self._closing = False
        self._attempt = 0
        self._state = SessionState.DISCONNECTED
        self._task = asyncio.create_task(self._run())

    async def wait(self) -> None:
        """Block until the connect loop gives up or the session is closed."""
        if self._task is not None:
            try:
                await asyncio.shield(self._task)
            except asyncio.CancelledError:
                if not self._closing:
                    raise

    async def close(self) -> None:
        """Tear down: cancel any pending reconnect and close the live channel."""
        if self._closing and self._task is None:
            return
        self._closing = True
        self._state = SessionState.CLOSING
        task, self._task = self._task, None
        channel, self._channel = self._channel, None
        if channel is not None:
            try:
                await channel.close()
            except Exception as exc:
                logger.debug("Ignoring error while closing channel: %s", exc)
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info("Session to %s closed", self.url)

    # ── Internals ─────────────────────────────────────────────────────

    async def _run(self) -> None:
        while not self._closing:
            self._state = SessionState.CONNECTING
            try:
                await self._run_channel()
                logger.info("Channel to %s closed", self.url)
            except Unauthenticated:
                logger.warning("Channel to %s rejected: unauthenticated", self.url)
            except TransportFailure as exc:
                logger.warning("Channel to %s failed: %s", self.url, exc)
            finally:
                self._channel = None

            if self._closing:
                return
            self._state = SessionState.DISCONNECTED
            if self._attempt >= self.policy.max_attempts:
                logger.warning(
                    "Max retries (%d) reached for %s, staying disconnected",
                    self.policy.max_attempts,
                    self.url,
                )
                return
            delay = self.policy.delay_ms(self._attempt)
            self._attempt += 1
            logger.info(
                "Scheduling reconnect in %dms (attempt %d/%d)",
                delay,
                self._attempt,
                self.policy.max_attempts,
            )
            await self._sleep(delay / 1000)

    async def _run_channel(self) -> None:
        try:
            async with self._connector(self.url, self.headers) as channel:
                self._channel = channel
                async for raw in channel:
                    await self._receive(raw)
        except ConnectionClosed as exc:
            if exc.rcvd is not None and exc.rcvd.code == UNAUTHENTICATED_CLOSE_CODE:
                raise Unauthenticated(exc.rcvd.reason) from exc
            raise TransportFailure(str(exc)) from exc
        except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
            raise TransportFailure(str(exc) or exc.__class__.__name__) from exc

    async def _receive(self, raw: Union[str, bytes]) -> None:
        try:
            message = json.loads(raw)
        except ValueError:
            logger.error("Discarding malformed push message: %r", raw)
            return
        if not isinstance(message, dict):
            logger.error("Discarding non-object push message: %r", raw)
            return
        if message.get("type") == MessageType.CONNECTED.value:
            self._state = SessionState.CONNECTED
            self._attempt = 0
            logger.info("Connected to %s: %s", self.url, message.get("message"))
        if self.on_message is None:
            return
        try:
            result = self.on_message(message)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Push message handler failed")
