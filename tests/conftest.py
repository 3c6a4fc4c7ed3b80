"""
tests/conftest.py

Shared pytest fixtures used by both unit and integration test suites.
All DB fixtures use in-memory SQLite (StaticPool), all HTTP fixtures use
respx.mock, and Kubernetes nodes are built from real client model classes —
no network or cluster access happens in any test.
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Redirect the DB to /tmp for all test runs: never write to /config/nodedns.db
# ---------------------------------------------------------------------------

os.environ.setdefault("DB_PATH", "/tmp/nodedns_test.db")

import httpx  # noqa: E402
import pytest  # noqa: E402
import respx  # noqa: E402
from kubernetes.client import (  # noqa: E402
    V1Node,
    V1NodeAddress,
    V1NodeCondition,
    V1NodeSpec,
    V1NodeStatus,
    V1ObjectMeta,
)
from sqlmodel import SQLModel, Session, create_engine  # noqa: E402
from sqlmodel.pool import StaticPool  # noqa: E402

# NOTE: Models must be imported before SQLModel.metadata.create_all so that
# all table definitions are registered in the metadata before we call create_all.
import db.models  # noqa: E402,F401: side-effect import to register table metadata


# ---------------------------------------------------------------------------
# Database fixtures: in-memory SQLite, isolated per test
# ---------------------------------------------------------------------------


@pytest.fixture(name="db_engine")
def db_engine_fixture():
    """Yields a fresh in-memory SQLite engine with all tables created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="db_session")
def db_session_fixture(db_engine):
    """Yields a session on the per-test in-memory engine."""
    with Session(db_engine) as session:
        yield session


# ---------------------------------------------------------------------------
# HTTP mock fixture: intercepts all httpx calls
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_http():
    """
    Yields a respx router that intercepts all httpx.AsyncClient calls.

    No real network traffic is allowed during tests.
    """
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest.fixture()
async def http_client():
    """Yields a real httpx.AsyncClient; pair with mock_http."""
    async with httpx.AsyncClient() as client:
        yield client


# ---------------------------------------------------------------------------
# Node factory
# ---------------------------------------------------------------------------


def make_node(
    name: str,
    internal: list[str] | None = None,
    external: list[str] | None = None,
    *,
    ready: str | None = "True",
    unschedulable: bool = False,
    extra_addresses: list[tuple[str, str]] | None = None,
) -> V1Node:
    """
    Builds a V1Node the way the API server reports one.

    Args:
        name: metadata.name
        internal: InternalIP addresses.
        external: ExternalIP addresses.
        ready: Status of the Ready condition; None omits the condition.
        unschedulable: spec.unschedulable
        extra_addresses: Additional (type, address) pairs appended as-is.
    """
    addresses = [V1NodeAddress(type="Hostname", address=name)]
    addresses += [V1NodeAddress(type="InternalIP", address=a) for a in internal or []]
    addresses += [V1NodeAddress(type="ExternalIP", address=a) for a in external or []]
    addresses += [V1NodeAddress(type=t, address=a) for t, a in extra_addresses or []]
    conditions = [V1NodeCondition(type="Ready", status=ready)] if ready is not None else None
    return V1Node(
        metadata=V1ObjectMeta(name=name),
        spec=V1NodeSpec(unschedulable=unschedulable),
        status=V1NodeStatus(addresses=addresses, conditions=conditions),
    )


@pytest.fixture(name="node")
def node_factory_fixture():
    """Exposes make_node to tests as a fixture."""
    return make_node
