"""Tests for the metrics helpers."""

import pytest
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader

import mcp_milvus.telemetry as telemetry
from mcp_milvus.session import ConnectionConfig, SessionManager
from mcp_milvus.session.manager import ACTIVE_SESSIONS_GAUGE


@pytest.fixture
def reader(monkeypatch: pytest.MonkeyPatch) -> InMemoryMetricReader:
    reader = InMemoryMetricReader()
    provider = MeterProvider(metric_readers=[reader])
    monkeypatch.setattr(
        telemetry, "_metrics_manager", telemetry.MetricsManager(provider.get_meter("test"))
    )
    return reader


def collected(reader: InMemoryMetricReader) -> dict[str, list]:
    points: dict[str, list] = {}
    data = reader.get_metrics_data()
    for resource_metrics in data.resource_metrics:
        for scope_metrics in resource_metrics.scope_metrics:
            for metric in scope_metrics.metrics:
                points[metric.name] = list(metric.data.data_points)
    return points


def test_helpers_are_noops_when_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(telemetry, "_metrics_manager", None)
    telemetry.record_counter("c")
    telemetry.record_histogram("h", 1.0)
    telemetry.increment_gauge("g")
    assert telemetry.get_metrics_manager() is None


def test_configure_without_endpoint_stays_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(telemetry, "_metrics_manager", None)
    telemetry.configure_metrics(enabled=True, endpoint=None)
    assert telemetry.get_metrics_manager() is None


def test_counter_and_histogram(reader: InMemoryMetricReader) -> None:
    telemetry.record_counter("calls", attributes={"tool": "milvus_query"})
    telemetry.record_counter("calls", attributes={"tool": "milvus_query"})
    telemetry.record_histogram("duration", 12.5)

    points = collected(reader)
    assert points["calls"][0].value == 2
    assert points["duration"][0].sum == 12.5


def test_active_sessions_gauge(reader: InMemoryMetricReader, backend) -> None:
    with SessionManager(backend, monitor_interval=0) as manager:
        manager.set("a", ConnectionConfig(address="http://localhost:19530"))
        manager.set("b", ConnectionConfig(address="http://localhost:19530"))
        manager.remove("a")
        assert collected(reader)[ACTIVE_SESSIONS_GAUGE][0].value == 1
    assert collected(reader)[ACTIVE_SESSIONS_GAUGE][0].value == 0


def test_active_sessions_gauge_never_negative(reader: InMemoryMetricReader, backend) -> None:
    with SessionManager(backend, monitor_interval=0) as manager:
        manager.set("a", ConnectionConfig(address="http://localhost:19530"))
        manager.remove("a")
        # Nothing left to count down.
        manager._decrement()
        assert manager.size() == 0
        assert collected(reader)[ACTIVE_SESSIONS_GAUGE][0].value == 0
