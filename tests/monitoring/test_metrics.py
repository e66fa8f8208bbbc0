"""Tests for docgate Prometheus metrics."""

from __future__ import annotations

import pytest
from prometheus_client import REGISTRY

from docgate.exceptions import AuthenticationError
from docgate.middleware.auth import AccessGate, AuthCredential
from docgate.middleware.cors import CORSPolicy
from docgate.monitoring.metrics import (
    record_auth_decision,
    record_config_change,
    record_rebuild,
    set_live_version,
)
from docgate.runtime.store import ConfigStore


def _get_metric_value(metric_name: str, labels: dict[str, str] | None = None) -> float:
    """Helper to retrieve current metric value from registry."""
    labels = labels or {}
    value = REGISTRY.get_sample_value(metric_name, labels)
    return float(value) if value is not None else 0.0


class TestConfigMetrics:
    def test_record_config_change_increments_counter(self) -> None:
        before = _get_metric_value("docgate_config_changes_total", {"section": "metrics-test"})
        record_config_change("metrics-test")
        after = _get_metric_value("docgate_config_changes_total", {"section": "metrics-test"})
        assert after == pytest.approx(before + 1)

    def test_store_counts_only_effective_changes(self) -> None:
        store = ConfigStore()
        labels = {"section": "counted"}
        before = _get_metric_value("docgate_config_changes_total", labels)

        store.set("counted", "key", "a")
        store.set("counted", "key", "a")
        store.set("counted", "key", "b")

        assert _get_metric_value("docgate_config_changes_total", labels) == pytest.approx(before + 2)

    def test_record_rebuild_by_outcome(self) -> None:
        labels = {"binding": "metrics-test", "outcome": "failure"}
        before = _get_metric_value("docgate_config_rebuilds_total", labels)
        record_rebuild("metrics-test", "failure")
        assert _get_metric_value("docgate_config_rebuilds_total", labels) == pytest.approx(before + 1)

    def test_set_live_version_is_a_gauge(self) -> None:
        set_live_version("metrics-test", 4)
        set_live_version("metrics-test", 2)
        assert _get_metric_value("docgate_live_object_version", {"binding": "metrics-test"}) == 2


class TestRequestMetrics:
    def test_record_auth_decision(self) -> None:
        before = _get_metric_value("docgate_auth_decisions_total", {"outcome": "granted"})
        record_auth_decision("granted")
        after = _get_metric_value("docgate_auth_decisions_total", {"outcome": "granted"})
        assert after == pytest.approx(before + 1)

    def test_access_gate_records_denials(self) -> None:
        gate = AccessGate(AuthCredential("admin", "pw"))
        before = _get_metric_value("docgate_auth_decisions_total", {"outcome": "denied"})

        with pytest.raises(AuthenticationError):
            gate.authorize("PUT", None)

        after = _get_metric_value("docgate_auth_decisions_total", {"outcome": "denied"})
        assert after == pytest.approx(before + 1)

    def test_rejected_origin_is_counted(self) -> None:
        policy = CORSPolicy(
            methods=frozenset({"GET"}),
            headers=frozenset(),
            credentials=False,
            origins=frozenset({"http://a.example"}),
        )
        before = _get_metric_value("docgate_cors_rejected_origins_total")

        policy.response_headers("http://evil.example")
        policy.response_headers("http://a.example")

        after = _get_metric_value("docgate_cors_rejected_origins_total")
        assert after == pytest.approx(before + 1)
