"""
Metrics support for mcp-milvus using OpenTelemetry.

This module provides a simplified API for metrics collection that wraps
OpenTelemetry's metrics API. All recording helpers are no-ops until
``configure_metrics`` has been called with an OTLP endpoint.
"""

import logging
import threading
from typing import Any

from opentelemetry import metrics
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.metrics import Counter, Histogram, UpDownCounter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource

from mcp_milvus.version import PACKAGE_NAME, PACKAGE_VERSION

logger = logging.getLogger(__name__)

# Global metrics state
_metrics_manager: "MetricsManager | None" = None
_meter_provider: MeterProvider | None = None


class MetricsManager:
    """Manages OpenTelemetry instruments for mcp-milvus."""

    def __init__(self, meter: metrics.Meter) -> None:
        self._meter = meter
        self._metrics: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get_counter(self, name: str, description: str = "", unit: str = "") -> Counter:
        """Get or create a counter metric."""
        with self._lock:
            if name not in self._metrics:
                self._metrics[name] = self._meter.create_counter(
                    name, description=description, unit=unit
                )
            return self._metrics[name]  # type: ignore[no-any-return]

    def get_histogram(self, name: str, description: str = "", unit: str = "") -> Histogram:
        """Get or create a histogram metric."""
        with self._lock:
            if name not in self._metrics:
                self._metrics[name] = self._meter.create_histogram(
                    name, description=description, unit=unit
                )
            return self._metrics[name]  # type: ignore[no-any-return]

    def get_gauge(self, name: str, description: str = "", unit: str = "") -> UpDownCounter:
        """Get or create a gauge metric.

        Note: OpenTelemetry uses UpDownCounter for gauge-like metrics.
        """
        with self._lock:
            if name not in self._metrics:
                self._metrics[name] = self._meter.create_up_down_counter(
                    name, description=description, unit=unit
                )
            return self._metrics[name]  # type: ignore[no-any-return]


def configure_metrics(
    *,
    enabled: bool = True,
    endpoint: str | None = None,
    export_interval: int = 60,
) -> None:
    """Configure metrics collection.

    Args:
        enabled: Whether metrics are enabled
        endpoint: OTLP endpoint for metrics export
        export_interval: Export interval in seconds
    """
    global _metrics_manager, _meter_provider

    if not enabled:
        logger.info("Metrics collection disabled")
        _metrics_manager = None
        return

    if not endpoint:
        logger.warning("No OTLP endpoint configured for metrics")
        return

    resource = Resource.create(
        {
            "service.name": PACKAGE_NAME,
            "service.version": PACKAGE_VERSION,
        }
    )
    exporter = OTLPMetricExporter(
        endpoint=endpoint if endpoint.endswith("/v1/metrics") else f"{endpoint}/v1/metrics",
        headers={},
    )
    reader = PeriodicExportingMetricReader(
        exporter=exporter,
        export_interval_millis=export_interval * 1000,
    )

    _meter_provider = MeterProvider(resource=resource, metric_readers=[reader])
    metrics.set_meter_provider(_meter_provider)
    _metrics_manager = MetricsManager(metrics.get_meter(PACKAGE_NAME, PACKAGE_VERSION))

    logger.info(f"Configured OTLP metrics export to {endpoint}")


def shutdown_metrics() -> None:
    """Flush and stop the meter provider, if one was configured."""
    global _metrics_manager, _meter_provider

    _metrics_manager = None
    if _meter_provider is not None:
        try:
            _meter_provider.shutdown()
        except Exception as e:
            logger.debug(f"Failed to shut down meter provider: {e}")
        _meter_provider = None


def get_metrics_manager() -> MetricsManager | None:
    """Get the global metrics manager, or None if metrics are disabled."""
    return _metrics_manager


def record_counter(
    name: str,
    value: int = 1,
    attributes: dict[str, Any] | None = None,
    description: str = "",
    unit: str = "1",
) -> None:
    """Record a counter metric."""
    if not _metrics_manager:
        return

    try:
        counter = _metrics_manager.get_counter(name, description, unit)
        counter.add(value, attributes=attributes or {})
    except Exception as e:
        logger.debug(f"Failed to record counter {name}: {e}")


def record_histogram(
    name: str,
    value: float,
    attributes: dict[str, Any] | None = None,
    description: str = "",
    unit: str = "ms",
) -> None:
    """Record a histogram metric."""
    if not _metrics_manager:
        return

    try:
        histogram = _metrics_manager.get_histogram(name, description, unit)
        histogram.record(value, attributes=attributes or {})
    except Exception as e:
        logger.debug(f"Failed to record histogram {name}: {e}")


def record_gauge(
    name: str,
    value: int,
    attributes: dict[str, Any] | None = None,
    description: str = "",
    unit: str = "1",
) -> None:
    """Add ``value`` (positive or negative) to a gauge metric."""
    if not _metrics_manager:
        return

    try:
        gauge = _metrics_manager.get_gauge(name, description, unit)
        gauge.add(value, attributes=attributes or {})
    except Exception as e:
        logger.debug(f"Failed to record gauge {name}: {e}")


def increment_gauge(name: str, attributes: dict[str, Any] | None = None, description: str = "") -> None:
    record_gauge(name, 1, attributes, description)


def decrement_gauge(name: str, attributes: dict[str, Any] | None = None, description: str = "") -> None:
    record_gauge(name, -1, attributes, description)


__all__ = [
    "MetricsManager",
    "configure_metrics",
    "decrement_gauge",
    "get_metrics_manager",
    "increment_gauge",
    "record_counter",
    "record_gauge",
    "record_histogram",
    "shutdown_metrics",
]
