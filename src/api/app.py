"""
FastAPI application factory.

* Owns the process-wide ``SubscriptionRegistry`` and the
  ``BroadcastDispatcher`` built on it (``app.state``).
* Registers routes for auth, bookings, the push channel and admin.
* Maps booking / auth errors to JSON responses.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.middleware import limiter
from src.api.routes import admin, auth, bookings, realtime
from src.domain.entities import BookingLocked, BookingNotFound, InvalidTransition
from src.infrastructure.database import dispose_engine
from src.infrastructure.redis_client import close_redis
from src.realtime.dispatcher import BroadcastDispatcher
from src.realtime.errors import Unauthenticated
from src.realtime.registry import SubscriptionRegistry

logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Close live channels, then the Redis pool and the DB engine, on shutdown."""
    yield
    registry: SubscriptionRegistry = app.state.registry
    for subscription in registry.subscriptions():
        try:
            await subscription.handle.close(code=1001, reason="server shutdown")
        except Exception as exc:
            logger.debug("Ignoring close failure on shutdown: %s", exc)
        registry.unregister(subscription.handle)
    await close_redis()
    await dispose_engine()


async def _not_found_handler(request: Request, exc: BookingNotFound):
    return JSONResponse(status_code=404, content={"detail": "Booking not found"})


async def _conflict_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


async def _unauthenticated_handler(request: Request, exc: Unauthenticated):
    return JSONResponse(status_code=401, content={"detail": exc.detail})


def create_app() -> FastAPI:
    app = FastAPI(
        title="UTruck Logistics API",
        description=(
            "Cargo bookings for customers and drivers.  Status changes go "
            "through a validated state machine and are pushed to every "
            "connected client over the ``/ws`` channel."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Push-channel composition root
    app.state.registry = SubscriptionRegistry()
    app.state.dispatcher = BroadcastDispatcher(app.state.registry)

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Domain errors
    app.add_exception_handler(BookingNotFound, _not_found_handler)
    app.add_exception_handler(InvalidTransition, _conflict_handler)
    app.add_exception_handler(BookingLocked, _conflict_handler)
    app.add_exception_handler(Unauthenticated, _unauthenticated_handler)

    # Routers
    app.include_router(auth.router, prefix="/api/v1")
    app.include_router(bookings.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")
    app.include_router(realtime.router)

    return app
