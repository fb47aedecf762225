"""Basic health check endpoint.

Reports PostgreSQL and Redis connectivity for monitoring.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model.

    Attributes:
        status: Overall system status (healthy/unhealthy)
        postgres: PostgreSQL connection status
        redis: Redis connection status
        error: Error message if unhealthy
    """

    status: str = Field(..., description="Overall system status")
    postgres: Optional[str] = Field(None, description="PostgreSQL status")
    redis: Optional[str] = Field(None, description="Redis status")
    error: Optional[str] = Field(None, description="Error message if unhealthy")


@router.get(
    "/health",
    response_model=HealthResponse,
    response_model_exclude_none=True,
    summary="System Health Check",
    responses={503: {"model": HealthResponse, "description": "System is unhealthy"}},
)
async def health_check(request: Request):
    """Check PostgreSQL and Redis.

    Returns:
        200 with both connections up, 503 otherwise
    """
    postgres_status = "connected"
    redis_status = "connected"
    errors = []

    try:
        await request.app.state.postgres_client.health_check()
    except Exception as e:
        logger.error(f"PostgreSQL health check failed: {e}")
        postgres_status = "disconnected"
        errors.append("PostgreSQL connection failed")

    try:
        await request.app.state.redis_client.health_check()
    except Exception as e:
        logger.error(f"Redis health check failed: {e}")
        redis_status = "disconnected"
        errors.append("Redis connection failed")

    if errors:
        body = HealthResponse(
            status="unhealthy",
            postgres=postgres_status,
            redis=redis_status,
            error="; ".join(errors),
        )
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=body.model_dump(exclude_none=True),
        )

    return HealthResponse(status="healthy", postgres=postgres_status, redis=redis_status)
