"""SQLite build history adapter.

Implements the core BuildHistory port using a simple SQLite database so the
CLI can resolve upstream builds and previous results between invocations.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import closing
from datetime import datetime, timezone
from typing import List, Optional

from adapters.event_mapper import build_event, event_to_payload
from core.models import BuildEvent, Result


class SQLiteBuildHistory:
    """Thin SQLite wrapper that satisfies the BuildHistory contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - builds: latest known payload per (project, number)
        """

        with closing(self._connect()) as conn, conn:
            # Fields:
            # - project/number: build identity (PRIMARY KEY)
            # - result: completed result, NULL while building
            # - payload: JSON form of the BuildEvent
            # - recorded_at: timestamp of the last write
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS builds (
                    project TEXT NOT NULL,
                    number INTEGER NOT NULL,
                    result TEXT,
                    payload TEXT NOT NULL,
                    recorded_at TIMESTAMP NOT NULL,
                    PRIMARY KEY (project, number)
                )
                """
            )

    def record(self, event: BuildEvent) -> None:
        """Upsert the event so later builds can refer to it."""

        now = datetime.now(timezone.utc)
        result = event.current_result.value if event.current_result and not event.is_building else None
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                INSERT INTO builds (project, number, result, payload, recorded_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(project, number) DO UPDATE SET
                    result = excluded.result,
                    payload = excluded.payload,
                    recorded_at = excluded.recorded_at
                """,
                (
                    event.project_name,
                    event.number,
                    result,
                    json.dumps(event_to_payload(event)),
                    now.isoformat(),
                ),
            )

    def get_build(self, project_name: str, number: int) -> Optional[BuildEvent]:
        """Return the stored event for a build, if any."""

        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT payload FROM builds WHERE project = ? AND number = ?",
                (project_name, number),
            ).fetchone()
        if row is None:
            return None
        return build_event(json.loads(row["payload"]))

    def prior_results(self, project_name: str, number: int) -> List[Optional[Result]]:
        """Return results of earlier builds of the project, newest first."""

        with closing(self._connect()) as conn:
            rows = conn.execute(
                """
                SELECT result FROM builds
                WHERE project = ? AND number < ?
                ORDER BY number DESC
                """,
                (project_name, number),
            ).fetchall()
        return [Result(row["result"]) if row["result"] else None for row in rows]
