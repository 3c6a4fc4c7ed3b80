"""
routes/api_routes.py

Responsibility: Read-only JSON endpoints — health, Prometheus metrics, the
current projections and per-record reconcile stats.
Does NOT: mutate state or perform DNS updates.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from dependencies import get_prometheus, get_registry, get_stats_repo
from repositories.stats_repository import StatsRepository
from services.metrics_service import PrometheusMetrics
from services.node_registry import NodeRegistry

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health() -> dict:
    """
    Liveness probe.

    Returns:
        A dict with a "status" key set to "ok".
    """
    return {"status": "ok"}


@router.get("/metrics")
async def metrics(prometheus: PrometheusMetrics = Depends(get_prometheus)) -> Response:
    """Renders the app's Prometheus registry in the text exposition format."""
    return Response(content=generate_latest(prometheus.registry), media_type=CONTENT_TYPE_LATEST)


@router.get("/api/projections")
async def get_projections(registry: NodeRegistry = Depends(get_registry)) -> dict:
    """
    Returns the addresses currently published for each projection.

    Args:
        registry: The application's NodeRegistry.

    Returns:
        {"external": [...], "internal": [...]} with sorted address strings.
    """
    current = await registry.projections()
    return {kind.value: projection.as_strings() for kind, projection in current.items()}


@router.get("/api/stats")
async def get_stats(stats_repo: StatsRepository = Depends(get_stats_repo)) -> list[dict]:
    """
    Returns reconcile counters for every record name seen so far.

    Args:
        stats_repo: Repository bound to the request's DB session.

    Returns:
        One dict per RecordStats row, ordered by record name.
    """
    return [
        stats.model_dump(exclude={"id"}, mode="json")
        for stats in stats_repo.get_all()
    ]
