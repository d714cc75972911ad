from __future__ import annotations

from shop.config import Settings


def init_profiling(settings: Settings) -> None:
    """Start the Pyroscope agent, tagged with the same service name as traces.

    The Python agent samples CPU only; allocation profiles are a Go-runtime feature.
    """

    # Lazy import keeps the native agent out of processes that never profile.
    import pyroscope

    pyroscope.configure(
        application_name=settings.otel_service_name,
        server_address=settings.pyroscope_endpoint,
        oncpu=True,
        gil_only=False,
        tags={"service_name": settings.otel_service_name},
    )
