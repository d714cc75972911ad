from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

import structlog

from shop.config import Settings
from shop.observability.metrics import get_metrics
from shop.observability.profiling import init_profiling
from shop.observability.tracing import init_tracing


logger = structlog.get_logger("observability")


@dataclass(frozen=True)
class Component:
    name: str
    enabled: bool
    start: Callable[[Settings], Any]
    # Required components abort startup on failure; the rest are best-effort.
    required: bool = False


@dataclass
class ComponentStatus:
    name: str
    enabled: bool
    ok: bool
    error: str | None = None


@dataclass
class StartupReport:
    components: list[ComponentStatus] = field(default_factory=list)

    def get(self, name: str) -> ComponentStatus | None:
        for status in self.components:
            if status.name == name:
                return status
        return None

    @property
    def ok(self) -> bool:
        return all(status.ok for status in self.components)


def init_metrics(settings: Settings) -> None:
    # Collectors self-register on import; this only makes sure the module is loaded.
    _ = settings
    get_metrics()


def default_components(settings: Settings) -> list[Component]:
    return [
        Component(name="tracing", enabled=settings.enable_tracing, start=init_tracing),
        Component(name="profiling", enabled=settings.enable_profiling, start=init_profiling),
        Component(name="metrics", enabled=True, start=init_metrics, required=True),
    ]


def init_observability(settings: Settings, components: list[Component] | None = None) -> StartupReport:
    """Start every observability component once and report how each one went.

    Optional components that fail are logged and reported, never raised.
    """

    logger.info("observability.init")
    report = StartupReport()

    for component in components if components is not None else default_components(settings):
        if not component.enabled:
            logger.info("observability.component_skipped", component=component.name)
            report.components.append(ComponentStatus(name=component.name, enabled=False, ok=True))
            continue

        try:
            component.start(settings)
        except Exception as exc:  # noqa: BLE001 - optional components must not stop the shop
            if component.required:
                raise
            logger.warning("observability.component_failed", component=component.name, error=str(exc))
            report.components.append(ComponentStatus(name=component.name, enabled=True, ok=False, error=str(exc)))
            continue

        logger.info("observability.component_started", component=component.name)
        report.components.append(ComponentStatus(name=component.name, enabled=True, ok=True))

    logger.info("observability.ready", ok=report.ok)
    return report
