from __future__ import annotations

import re

import jinja2
import structlog
from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from opentelemetry.trace import Tracer

from shop.db.store import Store
from shop.errors import BadRequestError, MethodNotAllowedError, TemplateError
from shop.observability.metrics import get_metrics


router = APIRouter(tags=["shop"])
logger = structlog.get_logger("checkout")

# Ids and quantities are INTEGER columns.
_MAX_INT = 2**31 - 1
_INT_RE = re.compile(r"-?[0-9]+")


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_tracer(request: Request) -> Tracer:
    return request.app.state.tracer


def get_templates(request: Request) -> Jinja2Templates:
    return request.app.state.templates


def _parse_int(value: str | None, field: str) -> int:
    # int() alone would also take "1_0" and non-ASCII digits.
    match = _INT_RE.fullmatch((value or "").strip())
    if match is None:
        raise BadRequestError(f"{field} must be an integer")
    number = int(match.group())
    if abs(number) > _MAX_INT:
        raise BadRequestError(f"{field} is out of range")
    return number


def _render(templates: Jinja2Templates, request: Request, name: str, context: dict) -> HTMLResponse:
    try:
        return templates.TemplateResponse(request, name, context)
    except jinja2.TemplateError as exc:
        raise TemplateError("Template error") from exc


@router.get("/", response_class=HTMLResponse)
def home(
    request: Request,
    store: Store = Depends(get_store),
    tracer: Tracer = Depends(get_tracer),
    templates: Jinja2Templates = Depends(get_templates),
) -> HTMLResponse:
    with tracer.start_as_current_span("home_handler"):
        products = store.list_products()
        return _render(templates, request, "index.html", {"products": products})


# Every method is routed here so the handler, not the router, answers 405.
@router.api_route("/checkout", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
def checkout(
    request: Request,
    product_id: str | None = Form(default=None),
    quantity: str | None = Form(default=None),
    store: Store = Depends(get_store),
    tracer: Tracer = Depends(get_tracer),
) -> RedirectResponse:
    with tracer.start_as_current_span("checkout_handler") as span:
        if request.method != "POST":
            raise MethodNotAllowedError("Method not allowed", headers={"Allow": "POST"})

        pid = _parse_int(product_id, "product_id")
        qty = _parse_int(quantity, "quantity")
        if qty < 1:
            raise BadRequestError("quantity must be at least 1")

        product = store.get_product(pid)
        total = product.price * qty
        order_id = store.create_order(pid, qty, total)

        get_metrics().observe_order_created()
        span.set_attribute("shop.order_id", order_id)
        logger.info("order.created", order_id=order_id, product_id=pid, quantity=qty, total=str(total))

        return RedirectResponse(url=f"/success?order_id={order_id}", status_code=303)


@router.get("/success", response_class=HTMLResponse)
def success(
    request: Request,
    order_id: str | None = None,
    store: Store = Depends(get_store),
    tracer: Tracer = Depends(get_tracer),
    templates: Jinja2Templates = Depends(get_templates),
) -> HTMLResponse:
    with tracer.start_as_current_span("success_handler"):
        oid = _parse_int(order_id, "order_id")
        order = store.get_order(oid)
        product = store.get_product(order.product_id)
        return _render(templates, request, "success.html", {"order": order, "product": product})
