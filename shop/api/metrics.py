from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST

from shop.observability.metrics import get_metrics


router = APIRouter(tags=["metrics"])


@router.get("/metrics")
def metrics() -> Response:
    return Response(get_metrics().render(), media_type=CONTENT_TYPE_LATEST)
