"""Health reporting models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    """Health status levels."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ComponentHealth(BaseModel):
    """Health status for a single component."""

    name: str = Field(..., description="Component name")
    status: HealthStatus = Field(..., description="Health status")
    message: str | None = Field(None, description="Status message or error details")
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Additional component metadata"
    )


class SystemHealth(BaseModel):
    """Overall system health status."""

    status: HealthStatus = Field(..., description="Overall system health")
    service: str = Field("docgate", description="Service name")
    version: str = Field(..., description="Service version")
    checked_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Timestamp of health check",
    )
    components: dict[str, ComponentHealth] = Field(
        default_factory=dict, description="Component health statuses"
    )
    uptime_seconds: float | None = Field(None, description="Service uptime in seconds")


def overall_status(components: dict[str, ComponentHealth]) -> HealthStatus:
    """Worst status across components; no components means unhealthy."""

    if not components:
        return HealthStatus.UNHEALTHY

    statuses = [component.status for component in components.values()]
    if HealthStatus.UNHEALTHY in statuses:
        return HealthStatus.UNHEALTHY
    if HealthStatus.DEGRADED in statuses:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY
