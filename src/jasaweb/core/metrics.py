"""
Prometheus metrics collection.

Each collector owns its registry so several app instances (tests, workers
started in one process) never collide on metric names.
"""

import time

import structlog
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, Info, generate_latest

from .. import __version__

logger = structlog.get_logger(__name__)


class MetricsCollector:
    """
    Centralized metrics collection for the JasaWeb API.

    Keep metrics simple,
    use in-memory counters, let Prometheus handle storage.
    """

    def __init__(self) -> None:
        self.registry = CollectorRegistry()

        # Service info
        self.service_info = Info(
            "jasaweb_service",
            "JasaWeb service information",
            registry=self.registry,
        )
        self.service_info.info({
            "version": __version__,
            "service": "jasaweb",
        })

        # Request metrics
        self.requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry,
        )

        self.request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=self.registry,
        )

        # Guard metrics
        self.rate_limit_rejections_total = Counter(
            "rate_limit_rejections_total",
            "Requests rejected by the rate-limit guard",
            ["path"],
            registry=self.registry,
        )

        self.auth_failures_total = Counter(
            "auth_failures_total",
            "Session tokens that failed verification",
            ["reason"],
            registry=self.registry,
        )

        self.csrf_rejections_total = Counter(
            "csrf_rejections_total",
            "Mutations rejected for a missing or mismatched CSRF token",
            registry=self.registry,
        )

        # Payment metrics
        self.payment_notifications_total = Counter(
            "payment_notifications_total",
            "Payment gateway notifications processed",
            ["status"],
            registry=self.registry,
        )

        self.uptime_seconds = Gauge(
            "uptime_seconds",
            "Service uptime in seconds",
            registry=self.registry,
        )

        # Track start time for uptime calculation
        self._start_time = time.time()

    def record_request(
        self,
        method: str,
        endpoint: str,
        status_code: int,
        duration_seconds: float
    ) -> None:
        """Record HTTP request metrics."""
        self.requests_total.labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self.request_duration.labels(
            method=method,
            endpoint=endpoint
        ).observe(duration_seconds)

    def record_rate_limit_rejection(self, path: str) -> None:
        self.rate_limit_rejections_total.labels(path=path).inc()

    def record_auth_failure(self, reason: str) -> None:
        self.auth_failures_total.labels(reason=reason).inc()

    def record_csrf_rejection(self) -> None:
        self.csrf_rejections_total.inc()

    def record_payment_notification(self, status: str) -> None:
        self.payment_notifications_total.labels(status=status).inc()

    def render(self) -> bytes:
        """Prometheus text exposition of this collector's registry."""
        self.uptime_seconds.set(time.time() - self._start_time)
        return generate_latest(self.registry)
