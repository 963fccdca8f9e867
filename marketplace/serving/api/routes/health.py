"""
Health Check Endpoints

Provides health and readiness checks for orchestration systems.
"""

from datetime import datetime, timezone
from typing import Dict, Any

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel

from marketplace.config import Settings
from marketplace.database.connection import check_database_health
from marketplace.serving.api.dependencies import get_app_settings

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


@router.get("/health", response_model=HealthResponse)
async def health_check(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> HealthResponse:
    """
    Comprehensive health check endpoint.

    Checks:
    - Database connectivity
    - Activity service wiring
    """
    checks = {}
    overall_status = "healthy"

    db_health = await check_database_health()
    checks["database"] = db_health
    if db_health.get("status") != "healthy":
        overall_status = "degraded"

    if getattr(request.app.state, "activity_service", None) is None:
        checks["activity_service"] = {"status": "unavailable"}
        overall_status = "unhealthy"
    else:
        checks["activity_service"] = {"status": "ready"}

    return HealthResponse(
        status=overall_status,
        version=settings.version,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """
    Kubernetes liveness probe endpoint.

    Returns 200 if the application is running.
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(request: Request, response: Response) -> Dict[str, str]:
    """
    Kubernetes readiness probe endpoint.

    Returns 200 once the database answers and the activity service is built.
    """
    if getattr(request.app.state, "activity_service", None) is None:
        response.status_code = 503
        return {"status": "not_ready", "reason": "service_unavailable"}

    db_health = await check_database_health()
    if db_health.get("status") != "healthy":
        response.status_code = 503
        return {"status": "not_ready", "reason": "database_unavailable"}

    return {"status": "ready"}
