"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint.

    Exposes all registered Prometheus metrics including:
    - docflow_versions_created_total{author_type}
    - docflow_changes_total{outcome}
    - docflow_generation_failures_total{reason}
    - docflow_diff_entries
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
