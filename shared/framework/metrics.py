"""Prometheus metrics collection for the reports cache services."""

from typing import Dict, Any, Optional

from prometheus_client import (
    Counter, Histogram, Gauge, Info,
    CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
)


class MetricsCollector:
    """Centralized metrics collection for a refresh service."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()
        self.metrics: Dict[str, Any] = {}

        self._init_common_metrics()

    def _init_common_metrics(self):
        """Initialize metrics shared by every refresh service."""
        self.info = Info(
            f"{self.service_name}_info",
            f"Information about {self.service_name}",
            registry=self.registry
        )

        self.cycles_total = Counter(
            f"{self.service_name}_cycles_total",
            f"Total number of refresh cycles run by {self.service_name}",
            ["status"],
            registry=self.registry
        )

        self.cycle_duration = Histogram(
            f"{self.service_name}_cycle_duration_seconds",
            "Refresh cycle duration in seconds",
            buckets=[1, 5, 15, 30, 60, 120, 300, 600, 1800, 3600, 7200],
            registry=self.registry
        )

        self.documents_written = Counter(
            f"{self.service_name}_documents_written_total",
            "Total number of cache documents committed",
            ["period"],
            registry=self.registry
        )

        self.bulk_batches = Counter(
            f"{self.service_name}_bulk_batches_total",
            "Total number of bulk write batches committed",
            ["period"],
            registry=self.registry
        )

        self.errors_total = Counter(
            f"{self.service_name}_errors_total",
            f"Total number of errors in {self.service_name}",
            ["error_type", "component"],
            registry=self.registry
        )

        self.health_status = Gauge(
            f"{self.service_name}_health_status",
            f"Health status of {self.service_name} (1=healthy, 0=unhealthy)",
            registry=self.registry
        )

    def record_cycle(self, status: str, duration: float):
        """Record a finished refresh cycle."""
        self.cycles_total.labels(status=status).inc()
        self.cycle_duration.observe(duration)

    def record_batch(self, period: str, size: int):
        """Record a committed bulk write batch."""
        self.bulk_batches.labels(period=period).inc()
        self.documents_written.labels(period=period).inc(size)

    def record_error(self, error_type: str, component: str):
        """Record an error metric."""
        self.errors_total.labels(error_type=error_type, component=component).inc()

    def set_health_status(self, healthy: bool):
        """Set the health status metric."""
        self.health_status.set(1 if healthy else 0)

    def update_service_info(self, version: str, environment: str, **kwargs):
        """Update service information."""
        info_dict = {
            "version": version,
            "environment": environment,
            **kwargs
        }
        self.info.info(info_dict)

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self.registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics."""
        return CONTENT_TYPE_LATEST
