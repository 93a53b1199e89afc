"""Prometheus scrape endpoint."""

from fastapi import APIRouter, Response

from app.monitoring.registry import registry

PROMETHEUS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

router = APIRouter(tags=["metrics"])


@router.get("/metrics", response_class=Response, include_in_schema=False)
def export_metrics() -> Response:
    return Response(content=registry.render(), media_type=PROMETHEUS_CONTENT_TYPE)
