"""
Prometheus metrics module for DriveBook.

Service timings come from the ``@measure_operation`` decorator; the
reservation counters are incremented by the admission controller and the
hold reaper.
"""

import os
from threading import Lock
from time import monotonic
from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "drivebook_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "drivebook_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "drivebook_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

reservation_admissions_total = Counter(
    "drivebook_reservation_admissions_total",
    "Reservation admission attempts by kind and outcome",
    ["kind", "outcome"],
    registry=REGISTRY,
)

reaper_releases_total = Counter(
    "drivebook_reaper_releases_total",
    "Rows released or purged by the hold reaper",
    ["category"],
    registry=REGISTRY,
)

outbox_events_total = Counter(
    "drivebook_outbox_events_total",
    "Reservation outbox deliveries by event type and terminal status",
    ["event_type", "status"],
    registry=REGISTRY,
)


def _metrics_ttl_seconds() -> float:
    """Return cache TTL seconds based on SITE_MODE."""

    mode = (os.getenv("SITE_MODE") or "").strip().lower()
    if mode in {"ci", "test"}:
        return 2.0
    return 1.0


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    _cache_lock: Lock = Lock()
    _cache_payload: Optional[bytes] = None
    _cache_ts: Optional[float] = None
    _cache_ttl_seconds: float = _metrics_ttl_seconds()

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'AvailabilityResolver')
            operation: Operation name (e.g., 'resolve_availability')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_admission(kind: str, outcome: str) -> None:
        """Count an admission attempt (outcome: admitted, conflict, capacity, blocked...)."""
        reservation_admissions_total.labels(kind=kind, outcome=outcome).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_reaper_release(category: str, count: int) -> None:
        if count <= 0:
            return
        reaper_releases_total.labels(category=category).inc(count)
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_outbox_outcome(event_type: str, status: str) -> None:
        outbox_events_total.labels(event_type=event_type, status=status).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def get_metrics() -> bytes:
        """
        Generate Prometheus metrics in exposition format.

        Returns:
            Metrics data in Prometheus text format
        """
        now = monotonic()
        payload = PrometheusMetrics._cache_payload
        ts = PrometheusMetrics._cache_ts
        ttl = PrometheusMetrics._cache_ttl_seconds

        if payload is not None and ts is not None and (now - ts) <= ttl:
            return payload

        with PrometheusMetrics._cache_lock:
            payload = PrometheusMetrics._cache_payload
            ts = PrometheusMetrics._cache_ts
            if payload is None or ts is None or (now - ts) > PrometheusMetrics._cache_ttl_seconds:
                PrometheusMetrics._refresh_cache_locked()
                payload = PrometheusMetrics._cache_payload

        return cast(bytes, payload)

    @staticmethod
    def prewarm() -> None:
        """Populate the cache so the first scrape is fast."""
        with PrometheusMetrics._cache_lock:
            PrometheusMetrics._refresh_cache_locked()

    @staticmethod
    def get_content_type() -> str:
        """Get the content type for Prometheus metrics."""
        return cast(str, CONTENT_TYPE_LATEST)

    @staticmethod
    def _refresh_cache_locked() -> None:
        """Refresh cached metrics payload. Caller must hold lock."""
        PrometheusMetrics._cache_payload = cast(bytes, generate_latest(REGISTRY))
        PrometheusMetrics._cache_ts = monotonic()
        PrometheusMetrics._cache_ttl_seconds = _metrics_ttl_seconds()

    @staticmethod
    def _invalidate_cache() -> None:
        """Invalidate cached metrics so next scrape refreshes."""
        with PrometheusMetrics._cache_lock:
            PrometheusMetrics._cache_ts = None
            PrometheusMetrics._cache_payload = None


# Singleton instance
prometheus_metrics = PrometheusMetrics()

# Histogram buckets appear in the exposition before the first real observation.
service_operation_duration_seconds.labels(service="bootstrap", operation="init").observe(0.0)
