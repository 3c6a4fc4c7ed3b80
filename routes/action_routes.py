"""
routes/action_routes.py

Responsibility: POST handlers that trigger engine actions on demand.
Does NOT: call DNS APIs directly or bypass the registry.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from dependencies import get_registry
from services.node_registry import NodeRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.post("/resync")
async def resync(registry: NodeRegistry = Depends(get_registry)) -> dict:
    """
    Republishes both projections immediately, as the periodic job would.

    Returns once both notifications were delivered or timed out.

    Args:
        registry: The application's NodeRegistry.

    Returns:
        {"status": "ok"}
    """
    logger.info("Manual resync requested.")
    await registry.resync()
    return {"status": "ok"}
