from __future__ import annotations

import uuid
from time import perf_counter
from typing import Any, Callable

import structlog
from starlette.datastructures import MutableHeaders

from shop.observability.metrics import ShopMetrics, get_metrics


UNMATCHED_ENDPOINT = "<unmatched>"


def _endpoint_label(scope: dict[str, Any]) -> str:
    # The router stores the matched route in the scope; unknown paths share one series.
    route = scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_ENDPOINT


class RequestContextMiddleware:
    """Adds request_id context, one access log line, and HTTP metrics per request."""

    def __init__(self, app: Callable[..., Any], metrics: ShopMetrics | None = None) -> None:
        self.app = app
        self.metrics = metrics or get_metrics()
        # Avoid self-observing the scrape endpoint.
        self._excluded_metric_paths = {"/metrics"}

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        path = scope.get("path", "")
        method = scope.get("method", "")

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=path,
            method=method,
        )

        start = perf_counter()
        status_code: int = 500

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code

            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 500))
                headers = MutableHeaders(scope=message)
                headers["X-Request-ID"] = request_id

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            elapsed_s = perf_counter() - start

            # Update metrics first so they update even if logging misbehaves.
            if path not in self._excluded_metric_paths:
                self.metrics.observe_http_request(method, _endpoint_label(scope), status_code, elapsed_s)

            structlog.get_logger("access").info(
                "http_request",
                status=status_code,
                duration_ms=round(elapsed_s * 1000.0, 2),
            )

            structlog.contextvars.clear_contextvars()
