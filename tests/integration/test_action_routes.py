"""
tests/integration/test_action_routes.py

Integration tests for routes/action_routes.py.
The resync action is exercised against a real NodeRegistry whose notifier
records what it was asked to publish.
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from app import create_app
from config import Settings
from dependencies import get_registry
from services.change_notifier import ChangeNotifier
from services.node_registry import NodeRegistry


def test_resync_publishes_both_projections():
    """POST /api/resync returns ok after External and Internal were delivered."""
    delivered: list[tuple[str, str]] = []

    async def sink(notice):
        delivered.append((notice.projection.kind.value, notice.op))

    app = create_app(Settings(api_token="t", zone="example.com"))
    registry = NodeRegistry(ChangeNotifier(sink))
    app.dependency_overrides[get_registry] = lambda: registry

    response = TestClient(app).post("/api/resync")
    app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert delivered == [("external", "resync"), ("internal", "resync")]
