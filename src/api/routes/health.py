# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health check endpoints.

This module provides health and readiness endpoints for the API.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from src.domains.learner_session import SessionManager

logger = logging.getLogger(__name__)

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()


class ComponentHealth(BaseModel):
    """Individual component health status."""
    status: str = Field(description="Component status")
    message: str | None = Field(None, description="Additional status message")
    details: dict[str, Any] = Field(default_factory=dict)


class ComponentsHealth(BaseModel):
    """All components health status."""
    sessions: ComponentHealth | None = None
    archive: ComponentHealth | None = None


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(description="Overall health status")
    timestamp: datetime = Field(description="Current server timestamp")
    version: str = Field(description="API version")
    environment: str = Field(description="Deployment environment")
    uptime_seconds: int = Field(description="Server uptime in seconds")
    components: ComponentsHealth = Field(default_factory=ComponentsHealth)


class ReadinessResponse(BaseModel):
    """Readiness check response model."""
    ready: bool = Field(description="Whether the service is ready")
    checks: dict[str, Any] = Field(description="Individual check results")


def _get_manager(request: Request) -> SessionManager | None:
    return getattr(request.app.state, "session_manager", None)


def check_sessions(manager: SessionManager | None) -> ComponentHealth:
    """Check the session manager is running."""
    if manager is None:
        return ComponentHealth(status="unhealthy", message="Session manager not initialized")
    return ComponentHealth(
        status="healthy",
        details={"sessions": len(manager), "closed_retained": manager.closed_count},
    )


def check_archive(manager: SessionManager | None) -> ComponentHealth:
    """Check the archive has no undelivered records."""
    if manager is None:
        return ComponentHealth(status="unhealthy", message="Session manager not initialized")

    pending = manager.archive.pending
    details = {"pending": pending, "delivered": manager.archive.delivered}
    if pending:
        return ComponentHealth(
            status="degraded",
            message=f"{pending} session records awaiting delivery",
            details=details,
        )
    return ComponentHealth(status="healthy", details=details)


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Check if the API is healthy with component details.

    Returns:
        HealthResponse with detailed status.
    """
    from src.core.config import get_settings

    settings = get_settings()
    manager = _get_manager(request)

    sessions_health = check_sessions(manager)
    archive_health = check_archive(manager)

    component_statuses = [sessions_health.status, archive_health.status]
    if all(s == "healthy" for s in component_statuses):
        overall_status = "healthy"
    elif any(s == "unhealthy" for s in component_statuses):
        overall_status = "unhealthy"
    else:
        overall_status = "degraded"

    return HealthResponse(
        status=overall_status,
        timestamp=datetime.now(timezone.utc),
        version="1.0.0",
        environment=settings.environment,
        uptime_seconds=int(time.time() - _server_start_time),
        components=ComponentsHealth(sessions=sessions_health, archive=archive_health),
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request) -> ReadinessResponse:
    """Check if the API is ready to accept traffic.

    Returns:
        ReadinessResponse with individual check results.
    """
    sessions_health = check_sessions(_get_manager(request))
    checks: dict[str, Any] = {"sessions": {"status": sessions_health.status}}
    return ReadinessResponse(ready=sessions_health.status == "healthy", checks=checks)
