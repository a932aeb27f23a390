"""
Admin / observability endpoints
===============================

GET /api/v1/admin/analytics -- fleet and trip aggregates, computed on demand
GET /api/v1/admin/health    -- simple health check
"""

from fastapi import APIRouter, Depends, Request

from ridehail.api.dependencies import get_engine
from ridehail.api.middleware import limiter
from ridehail.api.schemas import AnalyticsResponse, HealthResponse
from ridehail.config import settings
from ridehail.services.engine import FleetEngine

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/analytics",
    response_model=AnalyticsResponse,
    summary="Trip counts, completion rate, revenue and the ten latest trips",
)
@limiter.limit(settings.rate_limit)
async def get_analytics(
    request: Request,
    engine: FleetEngine = Depends(get_engine),
):
    return AnalyticsResponse.model_validate(await engine.get_analytics())


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
