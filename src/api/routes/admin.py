"""
Admin / observability endpoints
===============================

GET /api/v1/admin/connections -- live push-channel connection counts
GET /api/v1/admin/health      -- simple health check
"""

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import get_registry
from src.api.middleware import limiter
from src.api.schemas import ConnectionsResponse, HealthResponse
from src.realtime.registry import SubscriptionRegistry

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/connections",
    response_model=ConnectionsResponse,
    summary="Count live push-channel connections",
)
@limiter.limit("100/minute")
async def get_connections(
    request: Request,
    registry: SubscriptionRegistry = Depends(get_registry),
):
    return ConnectionsResponse(
        connections=len(registry), identities=len(registry.identities())
    )


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
