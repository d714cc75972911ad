from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from fastapi.templating import Jinja2Templates
from opentelemetry import trace
from opentelemetry.trace import TracerProvider
from starlette.exceptions import HTTPException as StarletteHTTPException

from shop.api.metrics import router as metrics_router
from shop.api.pages import router as pages_router
from shop.config import Settings, get_settings
from shop.db.store import Store
from shop.errors import ShopError, StoreConnectionError
from shop.observability.bootstrap import init_observability
from shop.observability.logging import configure_logging
from shop.observability.middleware import RequestContextMiddleware


logger = structlog.get_logger("shop")


async def _shop_error_handler(request: Request, exc: ShopError) -> PlainTextResponse:
    _ = request
    return PlainTextResponse(exc.message, status_code=exc.status_code, headers=exc.headers)


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
    _ = request
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)


def create_app(
    settings: Settings | None = None,
    store: Store | None = None,
    tracer_provider: TracerProvider | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    if store is None:
        store = Store(
            settings.database_dsn,
            tracer_provider=tracer_provider,
            instrument_queries=settings.enable_tracing,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings.log_level)
        init_observability(settings)
        try:
            store.initialize()
        except StoreConnectionError:
            logger.error("store.init_failed")
            raise
        logger.info("shop.started")
        try:
            yield
        finally:
            store.shutdown()
            logger.info("shop.stopped")

    app = FastAPI(title="Shop", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.tracer = trace.get_tracer("shop.api", tracer_provider=tracer_provider)
    app.state.templates = Jinja2Templates(directory=str(settings.templates_path))

    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(ShopError, _shop_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.include_router(pages_router)
    app.include_router(metrics_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
