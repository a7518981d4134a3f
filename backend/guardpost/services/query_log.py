"""Append-only audit trail of processed security queries."""
from __future__ import annotations

import json
import sqlite3
from typing import List, Optional
from uuid import uuid4

from guardpost.core.errors import LoggingError
from guardpost.models.query import QueryLogEntry
from guardpost.services.entity_store import SqliteStateStore, to_utc_key


class QueryLogStore(SqliteStateStore):
    """Writes each query log entry exactly once and never updates or deletes it."""

    def _initialize_schema(self) -> None:
        with self._lock:
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS query_log (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    log_id TEXT NOT NULL UNIQUE,
                    requester_id TEXT,
                    timestamp TEXT NOT NULL,
                    status TEXT NOT NULL,
                    data_json TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_query_log_requester ON query_log (requester_id, seq DESC);
                """
            )
            self._conn.commit()

    @staticmethod
    def new_log_id() -> str:
        return f"QRY-{uuid4().hex[:12].upper()}"

    def append(self, entry: QueryLogEntry) -> QueryLogEntry:
        try:
            with self._lock:
                self._conn.execute(
                    """
                    INSERT INTO query_log (log_id, requester_id, timestamp, status, data_json)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        entry.log_id,
                        entry.requester_id,
                        to_utc_key(entry.timestamp),
                        entry.status.value,
                        json.dumps(entry.model_dump(mode="json"), ensure_ascii=True),
                    ),
                )
                self._conn.commit()
        except sqlite3.Error as exc:
            raise LoggingError(f"Could not persist query log entry {entry.log_id}: {exc}") from exc
        return entry

    def list_recent(self, requester_id: Optional[str] = None, limit: int = 20) -> List[QueryLogEntry]:
        """Newest entries first, optionally only those of one requester."""
        limit = max(1, min(int(limit), 500))
        if requester_id:
            rows = self._fetch_all(
                "SELECT data_json FROM query_log WHERE requester_id = ? ORDER BY seq DESC LIMIT ?",
                (requester_id, limit),
            )
        else:
            rows = self._fetch_all("SELECT data_json FROM query_log ORDER BY seq DESC LIMIT ?", (limit,))
        return [QueryLogEntry.model_validate_json(row["data_json"]) for row in rows]

    def count(self, requester_id: Optional[str] = None) -> int:
        if requester_id:
            rows = self._fetch_all("SELECT COUNT(*) AS n FROM query_log WHERE requester_id = ?", (requester_id,))
        else:
            rows = self._fetch_all("SELECT COUNT(*) AS n FROM query_log")
        return int(rows[0]["n"]) if rows else 0


query_log_store = QueryLogStore()
