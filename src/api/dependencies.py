"""FastAPI dependency injection helpers."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.domain.entities import Identity
from src.infrastructure.database import async_session_factory
from src.infrastructure.repositories import UserRepository
from src.infrastructure.security import decode_session_token
from src.realtime.dispatcher import BroadcastDispatcher
from src.realtime.errors import Unauthenticated
from src.realtime.registry import SubscriptionRegistry

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def resolve_identity(
    token: Optional[str], users: UserRepository
) -> Optional[Identity]:
    """Map a session token to a known user, or ``None``."""
    if not token:
        return None
    claims = decode_session_token(token)
    if claims is None:
        return None
    return await users.get_identity(
        int(claims["sub"]), session_version=int(claims.get("ver", 0))
    )


def session_token(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Optional[str]:
    """Bearer token if present, else the session cookie."""
    if creds and creds.scheme.lower() == "bearer":
        return creds.credentials
    return request.cookies.get(settings.session_cookie_name)


async def get_current_user(
    token: Optional[str] = Depends(session_token),
    db: AsyncSession = Depends(get_db),
) -> Identity:
    identity = await resolve_identity(token, UserRepository(db))
    if identity is None:
        raise Unauthenticated()
    return identity


def get_registry(request: Request) -> SubscriptionRegistry:
    return request.app.state.registry


def get_dispatcher(request: Request) -> BroadcastDispatcher:
    return request.app.state.dispatcher
