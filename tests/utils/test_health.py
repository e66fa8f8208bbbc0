"""Tests for health reporting models."""

from __future__ import annotations

from docgate.utils.health import ComponentHealth, HealthStatus, SystemHealth, overall_status


def _component(status: HealthStatus) -> ComponentHealth:
    return ComponentHealth(name=status.value, status=status)


def test_component_health_creation():
    """Test ComponentHealth model creation."""
    health = ComponentHealth(
        name="backend",
        status=HealthStatus.HEALTHY,
        message="All systems operational",
    )

    assert health.name == "backend"
    assert health.status == HealthStatus.HEALTHY
    assert isinstance(health.metadata, dict)


def test_overall_status_is_the_worst_component():
    healthy = _component(HealthStatus.HEALTHY)
    degraded = _component(HealthStatus.DEGRADED)
    unhealthy = _component(HealthStatus.UNHEALTHY)

    assert overall_status({"a": healthy}) == HealthStatus.HEALTHY
    assert overall_status({"a": healthy, "b": degraded}) == HealthStatus.DEGRADED
    assert overall_status({"a": degraded, "b": unhealthy}) == HealthStatus.UNHEALTHY


def test_no_components_is_unhealthy():
    assert overall_status({}) == HealthStatus.UNHEALTHY


def test_system_health_defaults():
    health = SystemHealth(status=HealthStatus.HEALTHY, version="1.0")

    assert health.service == "docgate"
    assert health.checked_at is not None
    assert health.components == {}
