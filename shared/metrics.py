"""
Shared metrics configuration for the Policy Layer.
"""

import time
from contextlib import contextmanager
from typing import Dict, Any, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, Info, generate_latest


class MetricsCollector:
    """Centralized metrics collector for services.

    Every collector owns its registry, so several services (or test apps)
    can live in one process without clashing on metric names.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""
        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        if self.service_name == "policies":
            self._setup_policies_metrics()

    def _setup_policies_metrics(self):
        """Set up policy-evaluation metrics."""
        self._metrics["policy_evaluations_total"] = Counter(
            "policy_evaluations_total",
            "Total policy evaluations",
            ["decision", "source"],
            registry=self.registry
        )

        self._metrics["rule_chain_build_duration_seconds"] = Histogram(
            "rule_chain_build_duration_seconds",
            "Rule chain build duration in seconds",
            registry=self.registry
        )

        self._metrics["rule_chain_length"] = Histogram(
            "rule_chain_length",
            "Number of rules in built chains",
            buckets=(0, 1, 2, 5, 10, 20, 50, 100),
            registry=self.registry
        )

        self._metrics["rule_writes_total"] = Counter(
            "rule_writes_total",
            "Total rule array replacements",
            ["target"],
            registry=self.registry
        )

        self._metrics["active_evaluations"] = Gauge(
            "active_evaluations",
            "Evaluations currently in flight",
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def render_latest(self) -> bytes:
        """Render the registry in the Prometheus text format."""
        return generate_latest(self.registry)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_health_check(self, status: str):
        """Record health check metrics."""
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_error(self, error_type: str, service: Optional[str] = None):
        """Record error metrics."""
        service_name = service or self.service_name
        self._metrics["errors_total"].labels(error_type=error_type, service=service_name).inc()

    def record_evaluation(self, decision: str, source: str):
        """Record the outcome of one policy evaluation.

        ``source`` is the provenance of the matched rule, or ``implicit``.
        """
        if "policy_evaluations_total" in self._metrics:
            self._metrics["policy_evaluations_total"].labels(decision=decision, source=source).inc()

    def record_chain_length(self, length: int):
        if "rule_chain_length" in self._metrics:
            self._metrics["rule_chain_length"].observe(length)

    @contextmanager
    def time_operation(self, operation_name: str, **labels):
        """Context manager to time an operation."""
        start_time = time.time()
        try:
            yield
        finally:
            duration = time.time() - start_time
            metric = self._metrics.get(operation_name)
            if metric is not None:
                if labels:
                    metric = metric.labels(**labels)
                metric.observe(duration)

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).inc()

    @contextmanager
    def track_in_progress(self, metric_name: str):
        """Track in-flight work on a gauge."""
        gauge = self._metrics.get(metric_name)
        if gauge is None:
            yield
            return
        with gauge.track_inprogress():
            yield


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
