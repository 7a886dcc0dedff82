"""
Auth endpoints
==============

POST /api/v1/register -- create an account and start a session
POST /api/v1/login    -- start a session (cookie + token in body)
POST /api/v1/logout   -- end the session (cookie and issued tokens)
GET  /api/v1/user     -- the current identity
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_current_user, get_db, resolve_identity, session_token
from src.api.middleware import limiter
from src.api.schemas import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    UserResponse,
)
from src.config import settings
from src.domain.entities import Identity
from src.infrastructure.repositories import UserRepository
from src.infrastructure.security import (
    create_session_token,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


def _start_session(response: Response, user) -> str:
    token = create_session_token(user.id, user.username, user.session_version)
    response.set_cookie(
        settings.session_cookie_name,
        token,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        max_age=settings.access_token_expire_minutes * 60,
    )
    return token


@router.post(
    "/register",
    status_code=201,
    response_model=LoginResponse,
    summary="Register a new account",
)
@limiter.limit("20/minute")
async def register(
    request: Request,
    response: Response,
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    users = UserRepository(db)
    if await users.get_by_username(body.username):
        raise HTTPException(status_code=400, detail="Username already exists")

    user = await users.create(
        username=body.username,
        password_hash=hash_password(body.password),
        full_name=body.full_name,
        email=body.email,
        phone_number=body.phone_number,
        profile_image=body.profile_image,
        role=body.role,
    )
    token = _start_session(response, user)
    return LoginResponse(id=user.id, username=user.username, role=user.role, token=token)


@router.post("/login", response_model=LoginResponse, summary="Log in")
@limiter.limit("20/minute")
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await UserRepository(db).get_by_username(body.username)
    if not user or not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid username or password")
    token = _start_session(response, user)
    return LoginResponse(id=user.id, username=user.username, role=user.role, token=token)


@router.post("/logout", status_code=204, summary="Log out")
async def logout(
    token: Optional[str] = Depends(session_token),
    db: AsyncSession = Depends(get_db),
):
    """Clear the cookie and revoke every token issued to the caller so far."""
    users = UserRepository(db)
    identity = await resolve_identity(token, users)
    if identity is not None:
        await users.end_sessions(identity.id)
        await db.commit()
        logger.info("User %d logged out", identity.id)
    response = Response(status_code=204)
    response.delete_cookie(settings.session_cookie_name)
    return response


@router.get("/user", response_model=UserResponse, summary="Current user")
async def current_user(identity: Identity = Depends(get_current_user)):
    return identity
