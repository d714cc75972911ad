from __future__ import annotations

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram, generate_latest


class ShopMetrics:
    """HTTP and order metrics, registered on ``registry`` at construction."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        self.registry = registry
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status"],
            registry=registry,
        )
        self.http_request_duration_seconds = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration",
            ["method", "endpoint"],
            registry=registry,
        )
        self.orders_created_total = Counter(
            "orders_created_total",
            "Total orders created",
            registry=registry,
        )

    def observe_http_request(self, method: str, endpoint: str, status: int, elapsed_s: float) -> None:
        self.http_requests_total.labels(method, endpoint, str(status)).inc()
        self.http_request_duration_seconds.labels(method, endpoint).observe(elapsed_s)

    def observe_order_created(self) -> None:
        self.orders_created_total.inc()

    def render(self) -> bytes:
        return generate_latest(self.registry)


# Collectors register with the default registry when this module is imported.
_METRICS = ShopMetrics()


def get_metrics() -> ShopMetrics:
    return _METRICS
