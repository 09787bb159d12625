"""Health check endpoints.

Provides endpoints for monitoring service health and readiness.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text

from oms.api.dependencies import get_services
from oms.infrastructure.bootstrap import Container
from oms.infrastructure.cache import RedisCache
from oms.infrastructure.config import settings
from oms.infrastructure.sqlalchemy_uow import SqlAlchemyUnitOfWork

logger = structlog.get_logger()

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    service: str
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check service health.

    Returns:
        Health status with service name and version.
    """
    return HealthResponse(
        status="healthy",
        service="oms-api",
        version=settings.api_version,
    )


@router.get("/ready")
async def readiness_check(services: Annotated[Container, Depends(get_services)]) -> JSONResponse:
    """Check if the store and cache accept requests.

    Returns:
        ``ready`` with 200, or ``not_ready`` with 503 and the failing checks.
    """
    checks: dict[str, str] = {}

    try:
        async with services.uow_factory() as uow:
            if isinstance(uow, SqlAlchemyUnitOfWork):
                await uow.session.execute(text("SELECT 1"))
        checks["store"] = "ok"
    except Exception as e:
        logger.warning("Store readiness check failed", error=str(e))
        checks["store"] = "unavailable"

    if isinstance(services.cache, RedisCache):
        checks["cache"] = "ok" if await services.cache.ping() else "unavailable"
    else:
        checks["cache"] = "ok"

    ready = all(value == "ok" for value in checks.values())
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "not_ready", "checks": checks},
    )
