from __future__ import annotations

from prometheus_client import (
    CollectorRegistry,
    Gauge,
    GCCollector,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)
from prometheus_client.exposition import CONTENT_TYPE_LATEST

LATENCY_BUCKETS = (0.1, 0.3, 0.5, 0.7, 1.0, 3.0, 5.0, 7.0, 10.0)


class MetricsRegistry:
    """Process-wide HTTP metrics on a dedicated Prometheus registry.

    prometheus_client guards every value with its own lock, so concurrent
    observe/inc/dec calls never lose updates.
    """

    def __init__(self, *, default_collectors: bool = True) -> None:
        self.registry = CollectorRegistry()
        if default_collectors:
            ProcessCollector(registry=self.registry)
            PlatformCollector(registry=self.registry)
            GCCollector(registry=self.registry)

        self.request_duration = Histogram(
            "http_request_duration_seconds",
            "Duration of HTTP requests in seconds",
            ["method", "route", "status"],
            registry=self.registry,
            buckets=LATENCY_BUCKETS,
        )
        self.in_flight = Gauge(
            "http_requests_in_flight",
            "HTTP requests currently being processed",
            ["method"],
            registry=self.registry,
        )

    def request_started(self, method: str) -> None:
        self.in_flight.labels(method=method).inc()

    def request_finished(self, method: str, route: str, status_code: int, elapsed_s: float) -> None:
        self.in_flight.labels(method=method).dec()
        self.request_duration.labels(method=method, route=route, status=str(status_code)).observe(elapsed_s)

    def in_flight_count(self, method: str) -> float:
        value = self.registry.get_sample_value("http_requests_in_flight", {"method": method})
        return value or 0.0

    def observation_count(self, method: str, route: str, status_code: int) -> float:
        value = self.registry.get_sample_value(
            "http_request_duration_seconds_count",
            {"method": method, "route": route, "status": str(status_code)},
        )
        return value or 0.0

    def render(self) -> tuple[bytes, str]:
        """Return the registry in Prometheus text exposition format with its content type."""

        return generate_latest(self.registry), CONTENT_TYPE_LATEST
