"""Observability wiring for the shop.

Prometheus collectors, an ASGI middleware that records every request once,
OpenTelemetry tracing, the Pyroscope profiler and structlog JSON logging,
started together by :func:`shop.observability.bootstrap.init_observability`.
"""
