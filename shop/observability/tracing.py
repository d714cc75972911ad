from __future__ import annotations

import functools
from typing import Any, Callable, TypeVar

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ALWAYS_ON

from shop.config import Settings


F = TypeVar("F", bound=Callable[..., Any])


def build_tracer_provider(settings: Settings) -> TracerProvider:
    """Tracer provider that samples everything and exports over OTLP/HTTP."""

    resource = Resource.create({SERVICE_NAME: settings.otel_service_name})
    provider = TracerProvider(resource=resource, sampler=ALWAYS_ON)
    exporter = OTLPSpanExporter(endpoint=settings.otlp_traces_endpoint)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    return provider


def init_tracing(settings: Settings) -> TracerProvider:
    provider = build_tracer_provider(settings)
    trace.set_tracer_provider(provider)
    return provider


def traced(name: str) -> Callable[[F], F]:
    """Run a method inside a span named ``name``.

    The owner must expose a ``tracer`` attribute. The wrapped method gains an
    optional ``ctx`` keyword: an explicit parent context, falling back to the
    current one. Exceptions are recorded on the span and mark it as failed
    before propagating.
    """

    def decorator(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(self: Any, *args: Any, ctx: Context | None = None, **kwargs: Any) -> Any:
            with self.tracer.start_as_current_span(name, context=ctx):
                return fn(self, *args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator
