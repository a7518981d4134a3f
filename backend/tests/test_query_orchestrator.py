"""End-to-end tests for the security query pipeline with fake completion providers."""
from __future__ import annotations

import asyncio
import os
import sys
import threading
import time
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

import pytest  # noqa: E402

from guardpost.core.errors import InputValidationError, LoggingError  # noqa: E402
from guardpost.core.profile import AnalystProfile  # noqa: E402
from guardpost.models.query import QueryOutcome  # noqa: E402
from guardpost.models.security import Camera, CameraLocation, CameraStatus  # noqa: E402
from guardpost.services.completion_client import (  # noqa: E402
    BoundedCompletionClient,
    CompletionPrompt,
    CompletionResult,
)
from guardpost.services.entity_store import EntityStore  # noqa: E402
from guardpost.services.query_log import QueryLogStore  # noqa: E402
from guardpost.services.query_orchestrator import SecurityQueryOrchestrator  # noqa: E402


NOW = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


class RecordingClient:
    """Answers with the first context line that mentions offline cameras."""

    provider = "fake"
    model = "fake-model"

    def __init__(self, answer: str | None = None):
        self.answer = answer
        self.prompts: list[CompletionPrompt] = []

    async def complete(self, prompt: CompletionPrompt) -> CompletionResult:
        self.prompts.append(prompt)
        if self.answer is not None:
            return CompletionResult.success(self.answer, self.provider)
        for line in prompt.context.splitlines():
            if "offline camera" in line:
                return CompletionResult.success(f"Right now: {line.split('] ', 1)[1]}.", self.provider)
        return CompletionResult.success("No camera data.", self.provider)


class FailingClient:
    provider = "fake"
    model = "fake-model"

    async def complete(self, prompt: CompletionPrompt) -> CompletionResult:
        return CompletionResult.failure("service unavailable", self.provider)


class SlowClient(BoundedCompletionClient):
    provider = "slow"

    async def _generate(self, prompt: CompletionPrompt) -> str:
        await asyncio.sleep(5)
        return "too late"


class BrokenLogStore(QueryLogStore):
    def append(self, entry):
        raise LoggingError("disk full")


def _profile(**overrides) -> AnalystProfile:
    values = dict(
        role_instructions="You are a security analyst.",
        max_context_chars=6000,
        completion_timeout_seconds=2.0,
        apology_text="Sorry, the analyst is unavailable.",
        selection_cap=5,
        default_event_hours=24,
    )
    values.update(overrides)
    return AnalystProfile(**values)


def _orchestrator(tmp_path, client, log_store=None, **profile_overrides) -> SecurityQueryOrchestrator:
    return SecurityQueryOrchestrator(
        store=EntityStore(db_path=str(tmp_path / "entities.db")),
        log_store=log_store or QueryLogStore(db_path=str(tmp_path / "queries.db")),
        completion_client=client,
        profile=_profile(**profile_overrides),
        clock=lambda: NOW,
    )


def _add_cameras(store: EntityStore, statuses: list[CameraStatus]) -> None:
    for index, status in enumerate(statuses, start=1):
        store.upsert_camera(
            Camera(
                id=f"CCTV-{index:03d}",
                camera_id=f"CAM{index:03d}",
                name=f"Camera {index}",
                location=CameraLocation(lat=0, lng=0, zone="Parking Lot"),
                status=status,
                last_ping=NOW - timedelta(minutes=index),
            )
        )


def test_offline_camera_question_is_grounded_and_logged(tmp_path):
    client = RecordingClient()
    orchestrator = _orchestrator(tmp_path, client)
    _add_cameras(
        orchestrator.store,
        [CameraStatus.ONLINE, CameraStatus.ONLINE, CameraStatus.OFFLINE, CameraStatus.OFFLINE],
    )

    response = asyncio.run(orchestrator.process_query("How many cameras are offline?", requester_id="ops-7"))

    assert "2 offline cameras" in client.prompts[0].context
    assert "2" in response.response
    assert response.functions_used[0] == "list_offline_cameras"
    assert set(response.functions_used) <= set(orchestrator.registry.names())
    assert response.execution_time >= 0

    entries = orchestrator.log_store.list_recent()
    assert len(entries) == 1
    assert entries[0].response == response.response
    assert entries[0].requester_id == "ops-7"
    assert entries[0].functions_used == response.functions_used
    assert entries[0].status == QueryOutcome.COMPLETED


def test_empty_store_still_completes_and_logs(tmp_path):
    orchestrator = _orchestrator(tmp_path, RecordingClient(answer="Nothing is recorded yet."))

    response = asyncio.run(orchestrator.process_query("Give me a status report"))

    assert response.response == "Nothing is recorded yet."
    assert response.functions_used == ["system_snapshot"]
    assert orchestrator.log_store.count() == 1


def test_blank_query_raises_without_logging(tmp_path):
    client = RecordingClient()
    orchestrator = _orchestrator(tmp_path, client)

    for query in ("", "   \n\t"):
        with pytest.raises(InputValidationError):
            asyncio.run(orchestrator.process_query(query))

    assert orchestrator.log_store.count() == 0
    assert client.prompts == []


def test_completion_failure_returns_apology_and_logs(tmp_path):
    orchestrator = _orchestrator(tmp_path, FailingClient())

    response = asyncio.run(orchestrator.process_query("Which guards are on duty?"))

    assert response.response == "Sorry, the analyst is unavailable."
    assert response.execution_time >= 0
    assert "list_personnel_by_status" in response.functions_used
    entries = orchestrator.log_store.list_recent()
    assert len(entries) == 1
    assert entries[0].status == QueryOutcome.DEGRADED
    assert entries[0].response == response.response


def test_completion_timeout_degrades_within_budget(tmp_path):
    orchestrator = _orchestrator(tmp_path, SlowClient(model="slow", timeout_seconds=0.2))

    response = asyncio.run(orchestrator.process_query("Any alerts today?"))

    assert response.response == "Sorry, the analyst is unavailable."
    assert response.execution_time < 5000
    assert orchestrator.log_store.list_recent()[0].status == QueryOutcome.DEGRADED


def test_each_call_creates_exactly_one_log_entry(tmp_path):
    orchestrator = _orchestrator(tmp_path, RecordingClient(answer="ok"))

    async def run_batch():
        return await asyncio.gather(*(orchestrator.process_query(f"camera status {i}") for i in range(4)))

    responses = asyncio.run(run_batch())
    assert len(responses) == 4
    assert orchestrator.log_store.count() == 4


def test_log_write_failure_does_not_change_response(tmp_path):
    broken = BrokenLogStore(db_path=str(tmp_path / "queries.db"))
    orchestrator = _orchestrator(tmp_path, RecordingClient(answer="All cameras online."), log_store=broken)

    response = asyncio.run(orchestrator.process_query("camera status"))

    assert response.response == "All cameras online."


def test_answer_hides_internal_names_and_secrets(tmp_path, monkeypatch):
    client = RecordingClient(answer="Per [list_offline_cameras], key sk-test-abcdef123456 works.")
    orchestrator = _orchestrator(tmp_path, client)
    monkeypatch.setattr(orchestrator.settings, "openai_api_key", "sk-test-abcdef123456")

    response = asyncio.run(orchestrator.process_query("Are any cameras down?"))

    assert "list_offline_cameras" not in response.response
    assert "cameras not online" in response.response
    assert "sk-test-abcdef123456" not in response.response
    assert "[redacted]" in response.response


def test_selection_cap_bounds_functions_used(tmp_path):
    orchestrator = _orchestrator(tmp_path, RecordingClient(answer="ok"), selection_cap=2)

    response = asyncio.run(orchestrator.process_query("How many dogs, guards and cameras are offline?"))

    assert len(response.functions_used) <= 2


def test_latency_metrics_track_outcomes(tmp_path):
    orchestrator = _orchestrator(tmp_path, RecordingClient(answer="ok"))
    for latency in [100.0, 200.0, 300.0, 400.0, 500.0]:
        orchestrator._record_query_metric("completed", latency, success=True)
    orchestrator._record_query_metric("degraded", 2600.0, success=False)

    metrics = orchestrator.get_latency_metrics()
    assert metrics["status"] == "ok"
    assert metrics["samples_window"] == 6
    assert metrics["p50_ms"] >= 300.0
    assert metrics["routes"]["route:completed"] == 5
    assert metrics["routes"]["latency:over_budget"] == 1


def test_caller_cancellation_propagates_without_logging(tmp_path):
    orchestrator = _orchestrator(tmp_path, SlowClient(model="slow", timeout_seconds=30))

    async def run_and_cancel():
        task = asyncio.create_task(orchestrator.process_query("Which cameras are offline?"))
        await asyncio.sleep(0.2)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    started = time.perf_counter()
    asyncio.run(run_and_cancel())

    assert time.perf_counter() - started < 5
    assert orchestrator.log_store.count() == 0


def test_log_write_runs_off_the_event_loop_thread(tmp_path):
    class ThreadRecordingLogStore(QueryLogStore):
        def append(self, entry):
            self.writer_thread = threading.get_ident()
            return super().append(entry)

    log_store = ThreadRecordingLogStore(db_path=str(tmp_path / "queries.db"))
    orchestrator = _orchestrator(tmp_path, RecordingClient(answer="ok"), log_store=log_store)

    async def run():
        await orchestrator.process_query("camera status")
        return threading.get_ident()

    loop_thread = asyncio.run(run())
    assert log_store.writer_thread != loop_thread
    assert log_store.count() == 1
