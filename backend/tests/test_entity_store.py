"""Tests for the SQLite entity store and the query audit log."""
from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path


TMP = Path(__file__).resolve().parent / ".tmp_guardpost"
TMP.mkdir(parents=True, exist_ok=True)
os.environ["OPENAI_API_KEY"] = ""
os.environ["OPENAI_BASE_URL"] = ""
os.environ["GEMINI_API_KEY"] = ""
os.environ["COMPLETION_PROVIDER"] = "none"
os.environ["SECURITY_DB_PATH"] = str(TMP / "security_state.db")

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from guardpost.models.query import QueryLogEntry, QueryOutcome  # noqa: E402
from guardpost.models.security import CameraStatus, PatrolUnitStatus, PersonnelStatus  # noqa: E402
from guardpost.services.demo_seed import seed_demo_deployment  # noqa: E402
from guardpost.services.entity_store import EntityStore  # noqa: E402
from guardpost.services.query_log import QueryLogStore  # noqa: E402


NOW = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


def test_demo_seed_populates_every_entity_kind(tmp_path):
    store = EntityStore(db_path=str(tmp_path / "entities.db"))
    result = seed_demo_deployment(store, now=NOW)

    assert result["success"] is True
    assert store.counts() == {"patrol_units": 3, "personnel": 3, "cameras": 4, "security_events": 3}

    # Seeding twice replaces rather than duplicates.
    seed_demo_deployment(store, now=NOW)
    assert store.counts()["cameras"] == 4


def test_status_and_zone_filters(tmp_path):
    store = EntityStore(db_path=str(tmp_path / "entities.db"))
    seed_demo_deployment(store, now=NOW)

    assert [u.name for u in store.list_patrol_units(status=PatrolUnitStatus.ACTIVE)] == ["Luna", "Rex"]
    assert [p.employee_id for p in store.list_personnel(status="on_duty")] == ["BG001", "BG002"]
    assert [c.camera_id for c in store.list_cameras(status=CameraStatus.OFFLINE)] == ["CAM003"]
    assert [c.camera_id for c in store.list_cameras(zone="  parking   LOT ")] == ["CAM002"]
    assert store.list_personnel(status=PersonnelStatus.EMERGENCY) == []


def test_events_are_returned_newest_first_within_window(tmp_path):
    store = EntityStore(db_path=str(tmp_path / "entities.db"))
    seed_demo_deployment(store, now=NOW)

    events = store.list_events()
    assert [e.id for e in events] == ["EVT-002", "EVT-001", "EVT-003"]

    recent = store.list_events(since=NOW - timedelta(hours=1))
    assert [e.id for e in recent] == ["EVT-002", "EVT-001"]

    open_events = store.list_events(resolved=False)
    assert all(not e.is_resolved for e in open_events)
    assert store.list_events(limit=1)[0].id == "EVT-002"


def test_query_log_is_append_only_and_filterable(tmp_path):
    log = QueryLogStore(db_path=str(tmp_path / "queries.db"))
    for index, requester in enumerate(["ops-1", "ops-2", "ops-1"]):
        log.append(
            QueryLogEntry(
                log_id=log.new_log_id(),
                query=f"question {index}",
                response="answer",
                requester_id=requester,
                execution_time=12.5,
                functions_used=["system_snapshot"],
                status=QueryOutcome.COMPLETED,
            )
        )

    assert log.count() == 3
    assert log.count("ops-1") == 2
    latest = log.list_recent(requester_id="ops-1")
    assert [entry.query for entry in latest] == ["question 2", "question 0"]
    assert log.list_recent(limit=1)[0].requester_id == "ops-1"


def test_query_log_ids_are_unique():
    ids = {QueryLogStore.new_log_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(log_id.startswith("QRY-") for log_id in ids)
