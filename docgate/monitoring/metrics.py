"""Prometheus metrics definitions for docgate."""

from __future__ import annotations

from prometheus_client import Counter, Gauge

CONFIG_CHANGES = Counter(
    "docgate_config_changes_total",
    "Total effective configuration changes by section.",
    labelnames=("section",),
)

CONFIG_REBUILDS = Counter(
    "docgate_config_rebuilds_total",
    "Total rebuilds triggered by configuration bindings.",
    labelnames=("binding", "outcome"),
)

LIVE_OBJECT_SWAPS = Gauge(
    "docgate_live_object_version",
    "Number of times a live object has been swapped since startup.",
    labelnames=("binding",),
)

AUTH_DECISIONS = Counter(
    "docgate_auth_decisions_total",
    "Access gate decisions grouped by outcome.",
    labelnames=("outcome",),
)

CORS_REJECTED_ORIGINS = Counter(
    "docgate_cors_rejected_origins_total",
    "Cross-origin requests whose origin was not in the allow-list.",
)


def record_config_change(section: str) -> None:
    """Increment the configuration change counter for a section."""

    CONFIG_CHANGES.labels(section=section).inc()


def record_rebuild(binding: str, outcome: str) -> None:
    """
    Record the outcome of a binding rebuild.

    Args:
        binding: Binding name (e.g., 'cors', 'backend')
        outcome: 'success' or 'failure'
    """
    CONFIG_REBUILDS.labels(binding=binding, outcome=outcome).inc()


def set_live_version(binding: str, version: int) -> None:
    """Publish the current swap count of a live object."""
    LIVE_OBJECT_SWAPS.labels(binding=binding).set(version)


def record_auth_decision(outcome: str) -> None:
    """Increment the access gate counter ('open', 'granted' or 'denied')."""
    AUTH_DECISIONS.labels(outcome=outcome).inc()


def record_cors_rejection() -> None:
    CORS_REJECTED_ORIGINS.inc()
