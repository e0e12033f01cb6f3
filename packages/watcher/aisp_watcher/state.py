"""
SQLite state persistence for deployments the watcher is tracking.

Stores:
- tracked_deployments: when each (project, deployment) pair was first seen
  pending, so build timeouts survive watcher restarts
"""

from __future__ import annotations

import os
from datetime import datetime, timezone

import aiosqlite

_SCHEMA = """
CREATE TABLE IF NOT EXISTS tracked_deployments (
    project_id    TEXT NOT NULL,
    deployment_id TEXT NOT NULL,
    first_seen_at TEXT NOT NULL,
    PRIMARY KEY (project_id, deployment_id)
);
"""


class WatcherState:
    """Async SQLite state manager for the watcher."""

    def __init__(self, db_path: str):
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def open(self) -> None:
        if self._db_path != ":memory:":
            os.makedirs(os.path.dirname(self._db_path) or ".", exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(_SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    async def first_seen(
        self, project_id: str, deployment_id: str, now: datetime | None = None
    ) -> datetime:
        """When this deployment was first seen pending; records ``now`` on first sight."""
        assert self._db
        now = now or datetime.now(timezone.utc)
        await self._db.execute(
            """INSERT OR IGNORE INTO tracked_deployments (project_id, deployment_id, first_seen_at)
               VALUES (?, ?, ?)""",
            (project_id, deployment_id, now.isoformat()),
        )
        await self._db.commit()
        cursor = await self._db.execute(
            "SELECT first_seen_at FROM tracked_deployments WHERE project_id = ? AND deployment_id = ?",
            (project_id, deployment_id),
        )
        row = await cursor.fetchone()
        return datetime.fromisoformat(row["first_seen_at"])

    async def forget(self, project_id: str, deployment_id: str) -> None:
        assert self._db
        await self._db.execute(
            "DELETE FROM tracked_deployments WHERE project_id = ? AND deployment_id = ?",
            (project_id, deployment_id),
        )
        await self._db.commit()

    async def prune(self, active: set[tuple[str, str]]) -> int:
        """Drop every tracked pair not in ``active``. Returns how many were dropped."""
        tracked = await self.list_tracked()
        stale = [(t["project_id"], t["deployment_id"]) for t in tracked
                 if (t["project_id"], t["deployment_id"]) not in active]
        for project_id, deployment_id in stale:
            await self.forget(project_id, deployment_id)
        return len(stale)

    async def list_tracked(self) -> list[dict]:
        assert self._db
        cursor = await self._db.execute(
            "SELECT * FROM tracked_deployments ORDER BY first_seen_at"
        )
        rows = await cursor.fetchall()
        return [dict(r) for r in rows]
