"""
app.py

Responsibility: Builds the FastAPI application and wires every collaborator
in its lifespan: provider client, reconciler, notifier, registry, node
watcher and resync scheduler. Also the process entry point.
Does NOT: contain DNS, diff or membership logic.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI

from config import Settings, load_settings
from db.database import engine, init_db
from dependencies import build_provider
from exceptions import ConfigLoadError
from routes import action_routes, api_routes
from scheduler import create_scheduler
from services.change_notifier import ChangeNotifier
from services.dns_service import DnsReconciler
from services.kubernetes_service import NodeWatcher
from services.metrics_service import MetricsFanout, PrometheusMetrics
from services.node_registry import NodeRegistry
from services.stats_service import StatsService

logger = logging.getLogger(__name__)

# Per-request timeout for provider calls; notification deadlines still apply on top.
_HTTP_TIMEOUT = httpx.Timeout(30.0)


def create_app(settings: Settings) -> FastAPI:
    """
    Creates the FastAPI app for the given settings.

    Metrics exist from construction so /metrics works even before startup;
    everything that touches the network is created in the lifespan.

    Args:
        settings: Validated application settings.

    Returns:
        The configured FastAPI application.
    """
    prometheus = PrometheusMetrics(provider=settings.provider, zone=settings.zone)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        init_db()
        metrics = MetricsFanout(prometheus, StatsService(engine))

        async with httpx.AsyncClient(timeout=_HTTP_TIMEOUT) as http_client:
            provider = build_provider(settings, http_client, metrics)
            await provider.verify_zone(settings.zone)

            # Compare against the relative names the provider lists records under
            internal_record = provider.relative_name(settings.zone, settings.internal_record)
            external_record = provider.relative_name(settings.zone, settings.external_record)

            reconciler = DnsReconciler(
                provider,
                settings.zone,
                settings.ttl,
                internal_record=internal_record,
                external_record=external_record,
                dry_run=settings.dry_run,
                metrics=metrics,
            )
            notifier = ChangeNotifier(reconciler.handle_change, timeout=settings.notify_timeout)
            registry = NodeRegistry(notifier, name="main", metrics=metrics)
            app.state.registry = registry

            watcher = NodeWatcher(
                registry,
                asyncio.get_running_loop(),
                kubeconfig=settings.kubeconfig,
                master=settings.master,
            )
            scheduler = create_scheduler(registry, settings.resync_interval)

            if settings.dry_run:
                logger.warning("Dry run enabled — DNS changes will be logged, not applied.")
            watcher.start()
            scheduler.start()
            logger.info(
                "nodedns started — provider=%s zone=%s internal=%r external=%r",
                provider.name,
                settings.zone,
                internal_record,
                external_record,
            )
            try:
                yield
            finally:
                scheduler.shutdown(wait=False)
                # NOTE: stop() joins the watcher thread, which may be waiting
                # on this loop; join from a worker thread.
                await asyncio.to_thread(watcher.stop)

    app = FastAPI(title="nodedns", lifespan=lifespan)
    app.state.settings = settings
    app.state.prometheus = prometheus
    app.include_router(api_routes.router)
    app.include_router(action_routes.router)
    return app


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Keep DNS records in sync with the addresses of Kubernetes nodes"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--dry-run", action="store_true", help="Log DNS changes without applying them")
    args = parser.parse_args(argv)

    overrides = {"dry_run": True} if args.dry_run else {}
    try:
        settings = load_settings(**overrides)
    except ConfigLoadError as exc:
        _setup_logging("INFO")
        logger.error("%s", exc)
        return 2

    _setup_logging("DEBUG" if args.verbose else settings.log_level)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
