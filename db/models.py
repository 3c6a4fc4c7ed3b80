"""
db/models.py

Responsibility: Defines all SQLModel table models used by the application.
Does NOT: contain business logic, repositories, or session management.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

# ---------------------------------------------------------------------------
# RecordStats: per-DNS-record reconcile counters
# ---------------------------------------------------------------------------


class RecordStats(SQLModel, table=True):
    """
    Tracks reconcile activity for each DNS record name the service manages.

    One row per record name. Updated by StatsRepository on every reconcile
    pass, whether or not the pass changed anything.
    """

    id: Optional[int] = Field(default=None, primary_key=True)

    # Record name relative to the zone, e.g. "nodes"
    record_name: str = Field(unique=True, index=True)

    # Aware UTC timestamps: set when a reconcile pass starts / when a record
    # was created or deleted
    last_checked: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    last_changed: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    # Cumulative counters since the record was first tracked
    attempts: int = Field(default=0)
    successes: int = Field(default=0)
    failures: int = Field(default=0)
    created: int = Field(default=0)
    deleted: int = Field(default=0)
