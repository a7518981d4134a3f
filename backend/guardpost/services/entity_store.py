"""SQLite-backed entity store for patrol units, personnel, cameras and events."""
from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock, RLock
from typing import Any, Iterable, List, Optional, Sequence

from pydantic import BaseModel

from guardpost.core.config import get_settings
from guardpost.core.logging import logger
from guardpost.models.security import (
    Camera,
    CameraStatus,
    PatrolUnit,
    PatrolUnitStatus,
    Personnel,
    PersonnelStatus,
    SecurityEvent,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc_key(value: datetime) -> str:
    """Fixed-width UTC text so timestamps sort lexicographically."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _zone_key(zone: Optional[str]) -> str:
    return " ".join(str(zone or "").lower().split())


def _status_value(status: Any) -> str:
    return str(getattr(status, "value", status) or "").lower()


class SqliteStateStore:
    """Shared connection and locking for stores living in the security database."""

    _lock_registry: dict[str, RLock] = {}
    _lock_registry_guard = Lock()

    def __init__(self, db_path: Optional[str] = None) -> None:
        settings = get_settings()
        path = (db_path or settings.security_db_path or "").strip() or "./data/security_state.db"

        self._db_path = Path(path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = self._get_shared_lock(str(self._db_path.resolve()))
        self._conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,
            timeout=30.0,
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode = WAL")
        self._conn.execute("PRAGMA synchronous = NORMAL")
        self._conn.execute("PRAGMA busy_timeout = 30000")
        self._initialize_schema()

    @classmethod
    def _get_shared_lock(cls, key: str) -> RLock:
        with cls._lock_registry_guard:
            lock = cls._lock_registry.get(key)
            if lock is None:
                lock = RLock()
                cls._lock_registry[key] = lock
            return lock

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _initialize_schema(self) -> None:
        raise NotImplementedError

    def _fetch_all(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        with self._lock:
            return list(self._conn.execute(sql, tuple(params)).fetchall())

    def close(self) -> None:
        with self._lock:
            self._conn.close()


class EntityStore(SqliteStateStore):
    """Authoritative records of the monitored deployment.

    The query pipeline only reads from this store. Upserts exist for seeding
    and for the operator tooling that owns the records.
    """

    def _initialize_schema(self) -> None:
        with self._lock:
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS patrol_units (
                    unit_id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    status TEXT NOT NULL,
                    zone TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    data_json TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_patrol_units_status ON patrol_units (status);
                CREATE INDEX IF NOT EXISTS idx_patrol_units_zone ON patrol_units (zone);

                CREATE TABLE IF NOT EXISTS personnel (
                    person_id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    employee_id TEXT NOT NULL,
                    status TEXT NOT NULL,
                    zone TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    data_json TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_personnel_status ON personnel (status);
                CREATE INDEX IF NOT EXISTS idx_personnel_zone ON personnel (zone);

                CREATE TABLE IF NOT EXISTS cameras (
                    record_id TEXT PRIMARY KEY,
                    camera_code TEXT NOT NULL,
                    status TEXT NOT NULL,
                    zone TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    data_json TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_cameras_status ON cameras (status);
                CREATE INDEX IF NOT EXISTS idx_cameras_zone ON cameras (zone);

                CREATE TABLE IF NOT EXISTS security_events (
                    event_id TEXT PRIMARY KEY,
                    event_type TEXT NOT NULL,
                    severity TEXT NOT NULL,
                    zone TEXT NOT NULL,
                    is_resolved INTEGER NOT NULL,
                    occurred_at TEXT NOT NULL,
                    data_json TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_events_time ON security_events (occurred_at DESC);
                CREATE INDEX IF NOT EXISTS idx_events_zone ON security_events (zone);
                CREATE INDEX IF NOT EXISTS idx_events_resolved ON security_events (is_resolved);
                """
            )
            self._conn.commit()

    @staticmethod
    def _dump(model: BaseModel) -> str:
        return json.dumps(model.model_dump(mode="json"), ensure_ascii=True)

    @staticmethod
    def _where(clauses: Iterable[tuple[str, Any]]) -> tuple[str, list[Any]]:
        parts: list[str] = []
        params: list[Any] = []
        for clause, value in clauses:
            if value is None:
                continue
            parts.append(clause)
            params.append(value)
        return (f"WHERE {' AND '.join(parts)}" if parts else ""), params

    # --- Writes -------------------------------------------------------

    def upsert_patrol_unit(self, unit: PatrolUnit) -> PatrolUnit:
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO patrol_units (unit_id, name, status, zone, updated_at, data_json)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(unit_id) DO UPDATE SET
                    name = excluded.name,
                    status = excluded.status,
                    zone = excluded.zone,
                    updated_at = excluded.updated_at,
                    data_json = excluded.data_json
                """,
                (
                    unit.id,
                    unit.name,
                    _status_value(unit.status),
                    _zone_key(unit.location.zone),
                    to_utc_key(utc_now()),
                    self._dump(unit),
                ),
            )
            self._conn.commit()
        return unit

    def upsert_personnel(self, person: Personnel) -> Personnel:
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO personnel (person_id, name, employee_id, status, zone, updated_at, data_json)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(person_id) DO UPDATE SET
                    name = excluded.name,
                    employee_id = excluded.employee_id,
                    status = excluded.status,
                    zone = excluded.zone,
                    updated_at = excluded.updated_at,
                    data_json = excluded.data_json
                """,
                (
                    person.id,
                    person.name,
                    person.employee_id,
                    _status_value(person.status),
                    _zone_key(person.assigned_zone),
                    to_utc_key(utc_now()),
                    self._dump(person),
                ),
            )
            self._conn.commit()
        return person

    def upsert_camera(self, camera: Camera) -> Camera:
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO cameras (record_id, camera_code, status, zone, updated_at, data_json)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(record_id) DO UPDATE SET
                    camera_code = excluded.camera_code,
                    status = excluded.status,
                    zone = excluded.zone,
                    updated_at = excluded.updated_at,
                    data_json = excluded.data_json
                """,
                (
                    camera.id,
                    camera.camera_id,
                    _status_value(camera.status),
                    _zone_key(camera.location.zone),
                    to_utc_key(utc_now()),
                    self._dump(camera),
                ),
            )
            self._conn.commit()
        return camera

    def add_event(self, event: SecurityEvent) -> SecurityEvent:
        with self._lock:
            self._conn.execute(
                """
                INSERT OR REPLACE INTO security_events
                    (event_id, event_type, severity, zone, is_resolved, occurred_at, data_json)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    event.id,
                    _status_value(event.type),
                    _status_value(event.severity),
                    _zone_key(event.location.zone),
                    1 if event.is_resolved else 0,
                    to_utc_key(event.occurred_at),
                    self._dump(event),
                ),
            )
            self._conn.commit()
        return event

    def reset(self) -> None:
        """Remove every record of every kind."""
        with self._lock:
            self._conn.executescript(
                """
                DELETE FROM patrol_units;
                DELETE FROM personnel;
                DELETE FROM cameras;
                DELETE FROM security_events;
                """
            )
            self._conn.commit()
        logger.info("Entity store reset", db_path=str(self._db_path))

    # --- Reads --------------------------------------------------------

    def list_patrol_units(
        self,
        status: PatrolUnitStatus | str | None = None,
        zone: Optional[str] = None,
    ) -> List[PatrolUnit]:
        where, params = self._where(
            [
                ("status = ?", _status_value(status) if status else None),
                ("zone = ?", _zone_key(zone) if zone else None),
            ]
        )
        rows = self._fetch_all(f"SELECT data_json FROM patrol_units {where} ORDER BY name, unit_id", params)
        return [PatrolUnit.model_validate_json(row["data_json"]) for row in rows]

    def list_personnel(
        self,
        status: PersonnelStatus | str | None = None,
        zone: Optional[str] = None,
    ) -> List[Personnel]:
        where, params = self._where(
            [
                ("status = ?", _status_value(status) if status else None),
                ("zone = ?", _zone_key(zone) if zone else None),
            ]
        )
        rows = self._fetch_all(f"SELECT data_json FROM personnel {where} ORDER BY name, person_id", params)
        return [Personnel.model_validate_json(row["data_json"]) for row in rows]

    def list_cameras(
        self,
        status: CameraStatus | str | None = None,
        zone: Optional[str] = None,
    ) -> List[Camera]:
        where, params = self._where(
            [
                ("status = ?", _status_value(status) if status else None),
                ("zone = ?", _zone_key(zone) if zone else None),
            ]
        )
        rows = self._fetch_all(f"SELECT data_json FROM cameras {where} ORDER BY camera_code, record_id", params)
        return [Camera.model_validate_json(row["data_json"]) for row in rows]

    def list_events(
        self,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        zone: Optional[str] = None,
        resolved: Optional[bool] = None,
        limit: Optional[int] = None,
    ) -> List[SecurityEvent]:
        """Events newest first, optionally bounded to a time window."""
        where, params = self._where(
            [
                ("occurred_at >= ?", to_utc_key(since) if since else None),
                ("occurred_at <= ?", to_utc_key(until) if until else None),
                ("zone = ?", _zone_key(zone) if zone else None),
                ("is_resolved = ?", (1 if resolved else 0) if resolved is not None else None),
            ]
        )
        sql = f"SELECT data_json FROM security_events {where} ORDER BY occurred_at DESC, event_id"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(max(1, int(limit)))
        rows = self._fetch_all(sql, params)
        return [SecurityEvent.model_validate_json(row["data_json"]) for row in rows]

    def counts(self) -> dict[str, int]:
        with self._lock:
            return {
                table: int(self._conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0])
                for table in ("patrol_units", "personnel", "cameras", "security_events")
            }


entity_store = EntityStore()
