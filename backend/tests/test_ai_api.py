"""API-level tests for the analyst and security routers."""
from __future__ import annotations

import os
import sys
from pathlib import Path
from uuid import uuid4

from fastapi.testclient import TestClient


TMP = Path(__file__).resolve().parent / ".tmp_guardpost"
TMP.mkdir(parents=True, exist_ok=True)
os.environ["OPENAI_API_KEY"] = ""
os.environ["OPENAI_BASE_URL"] = ""
os.environ["GEMINI_API_KEY"] = ""
os.environ["COMPLETION_PROVIDER"] = "none"
os.environ["SECURITY_DB_PATH"] = str(TMP / "security_state.db")

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from guardpost.main import app  # noqa: E402
from guardpost.services.completion_client import CompletionPrompt, CompletionResult  # noqa: E402
from guardpost.services.query_orchestrator import security_query_orchestrator  # noqa: E402


client = TestClient(app)


class EchoSummaryClient:
    provider = "fake"
    model = "fake-model"

    async def complete(self, prompt: CompletionPrompt) -> CompletionResult:
        first = prompt.context.splitlines()[0]
        return CompletionResult.success(f"Summary: {first.split('] ', 1)[-1]}", self.provider)


def _seed():
    response = client.post("/security/seed/demo")
    assert response.status_code == 200
    data = response.json()
    assert data["cameras"] == 4
    return data


def test_root_and_health():
    assert client.get("/health").json() == {"status": "healthy"}
    root = client.get("/").json()
    assert root["endpoints"]["ai"] == "/ai"


def test_query_returns_camel_case_fields_and_logs_requester(monkeypatch):
    _seed()
    monkeypatch.setattr(security_query_orchestrator, "completion_client", EchoSummaryClient())
    requester = f"ops-{uuid4().hex[:8]}"

    response = client.post(
        "/ai/query",
        json={"query": "How many cameras are offline?"},
        headers={"X-Requester-ID": requester},
    )
    assert response.status_code == 200
    data = response.json()
    assert set(data) == {"response", "executionTime", "functionsUsed"}
    assert data["response"].startswith("Summary: 1 offline camera, 1 in maintenance")
    assert data["functionsUsed"][0] == "list_offline_cameras"

    history = client.get("/ai/queries", params={"requester_id": requester})
    assert history.status_code == 200
    items = history.json()["items"]
    assert len(items) == 1
    assert items[0]["query"] == "How many cameras are offline?"
    assert items[0]["response"] == data["response"]


def test_body_requester_overrides_header(monkeypatch):
    monkeypatch.setattr(security_query_orchestrator, "completion_client", EchoSummaryClient())
    requester = f"body-{uuid4().hex[:8]}"

    response = client.post(
        "/ai/query",
        json={"query": "status report", "requester_id": requester},
        headers={"X-Requester-ID": "header-user"},
    )
    assert response.status_code == 200
    items = client.get("/ai/queries", params={"requester_id": requester}).json()["items"]
    assert len(items) == 1


def test_blank_query_is_rejected():
    response = client.post("/ai/query", json={"query": "   "})
    assert response.status_code == 400


def test_unconfigured_provider_degrades_to_apology():
    response = client.post("/ai/query", json={"query": "Any intrusions last night?"})
    assert response.status_code == 200
    data = response.json()
    assert data["response"] == security_query_orchestrator.profile.apology_text
    assert data["executionTime"] >= 0


def test_function_catalog_and_metrics():
    catalog = client.get("/ai/functions").json()
    names = [item["name"] for item in catalog["items"]]
    assert len(names) == 16
    assert "list_offline_cameras" in names
    assert catalog["selection_cap"] == security_query_orchestrator.selector.cap

    health = client.get("/ai/health").json()
    assert health["runtime"]["registry_functions"] == 16

    metrics = client.get("/ai/metrics").json()
    assert metrics["status"] in {"ok", "empty"}


def test_snapshot_reflects_seeded_deployment():
    _seed()
    snapshot = client.get("/security/snapshot")
    assert snapshot.status_code == 200
    data = snapshot.json()
    assert data["cameras"]["total"] == 4
    assert data["cameras"]["not_online"] == ["CAM003", "CAM004"]
    assert data["events"]["unresolved"] == 1
