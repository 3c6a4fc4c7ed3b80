"""
dependencies.py

Responsibility: Declares the FastAPI Depends() provider functions and the
provider-client factory used by the lifespan wiring.
Does NOT: contain business logic, HTTP handlers, or DB schema definitions.
"""

from __future__ import annotations

import httpx
from fastapi import Depends, Request
from sqlmodel import Session

from config import Settings
from db.database import get_session
from providers.cloudflare_client import CloudflareClient
from providers.digitalocean_client import DigitalOceanClient
from providers.dns_provider import DNSProvider
from repositories.stats_repository import StatsRepository
from services.metrics_service import MetricsSink, PrometheusMetrics
from services.node_registry import NodeRegistry

# ---------------------------------------------------------------------------
# Provider factory
# ---------------------------------------------------------------------------


def build_provider(
    settings: Settings,
    http_client: httpx.AsyncClient,
    metrics: MetricsSink | None = None,
) -> DNSProvider:
    """
    Returns the DNSProvider selected by settings.provider.

    Args:
        settings: The validated application settings.
        http_client: The shared httpx.AsyncClient.
        metrics: Sink for provider rate-limit reporting.

    Returns:
        A DigitalOceanClient or CloudflareClient.
    """
    if settings.provider == "cloudflare":
        return CloudflareClient(http_client=http_client, api_token=settings.api_token)
    return DigitalOceanClient(http_client=http_client, api_token=settings.api_token, metrics=metrics)


# ---------------------------------------------------------------------------
# Shared app-level resources
# ---------------------------------------------------------------------------


def get_registry(request: Request) -> NodeRegistry:
    """
    Returns the NodeRegistry created during the FastAPI lifespan.

    Args:
        request: The current FastAPI Request (injected automatically).
    """
    return request.app.state.registry


def get_prometheus(request: Request) -> PrometheusMetrics:
    """Returns the PrometheusMetrics instance created with the app."""
    return request.app.state.prometheus


# ---------------------------------------------------------------------------
# Repository providers
# ---------------------------------------------------------------------------


def get_stats_repo(session: Session = Depends(get_session)) -> StatsRepository:
    """
    Provides a StatsRepository for the current request's DB session.

    Args:
        session: The DB session injected by get_session.
    """
    return StatsRepository(session)
