"""Tests for context assembly, per-function degradation and the size budget."""
from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path


TMP = Path(__file__).resolve().parent / ".tmp_guardpost"
TMP.mkdir(parents=True, exist_ok=True)
os.environ["OPENAI_API_KEY"] = ""
os.environ["OPENAI_BASE_URL"] = ""
os.environ["GEMINI_API_KEY"] = ""
os.environ["COMPLETION_PROVIDER"] = "none"
os.environ["SECURITY_DB_PATH"] = str(TMP / "security_state.db")

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from guardpost.services.context_assembler import (  # noqa: E402
    DATA_UNAVAILABLE,
    TRUNCATION_MARKER,
    ContextAssembler,
)
from guardpost.services.entity_store import EntityStore  # noqa: E402
from guardpost.services.function_registry import (  # noqa: E402
    FunctionCall,
    FunctionCategory,
    FunctionRegistry,
    RegistryFunction,
)


def _fixed(summary: str, payload_size: int = 0):
    def handler(ctx, call):
        return {"summary": summary, "items": ["x" * payload_size] if payload_size else []}

    return handler


def _broken(ctx, call):
    raise RuntimeError("disk I/O error")


def _registry(tmp_path, *functions: RegistryFunction) -> FunctionRegistry:
    store = EntityStore(db_path=str(tmp_path / "entities.db"))
    return FunctionRegistry(store, functions=functions)


def _function(name: str, handler) -> RegistryFunction:
    return RegistryFunction(
        name=name,
        title=name.replace("_", " "),
        description=name,
        category=FunctionCategory.SNAPSHOT,
        handler=handler,
    )


def test_blocks_follow_selection_order(tmp_path):
    registry = _registry(
        tmp_path,
        _function("first", _fixed("first summary")),
        _function("second", _fixed("second summary")),
    )
    assembler = ContextAssembler(registry)

    assembled = asyncio.run(assembler.assemble([FunctionCall("second"), FunctionCall("first")]))
    assert assembled.succeeded == ["second", "first"]
    assert assembled.text.index("[second] second summary") < assembled.text.index("[first] first summary")


def test_failed_function_is_marked_unavailable_and_others_survive(tmp_path):
    registry = _registry(
        tmp_path,
        _function("cameras", _fixed("2 offline cameras")),
        _function("events", _broken),
    )
    assembled = asyncio.run(ContextAssembler(registry).assemble([FunctionCall("cameras"), FunctionCall("events")]))

    assert assembled.succeeded == ["cameras"]
    assert assembled.failed == ["events"]
    assert f"[events] {DATA_UNAVAILABLE}" in assembled.text
    assert "disk I/O error" not in assembled.text
    assert "2 offline cameras" in assembled.text


def test_budget_keeps_earlier_blocks_whole(tmp_path):
    registry = _registry(
        tmp_path,
        _function("small", _fixed("short")),
        _function("large", _fixed("long", payload_size=2000)),
        _function("late", _fixed("never fits", payload_size=2000)),
    )
    assembler = ContextAssembler(registry, max_chars=400)
    calls = [FunctionCall("small"), FunctionCall("large"), FunctionCall("late")]

    assembled = asyncio.run(assembler.assemble(calls))
    assert len(assembled.text) <= 400
    assert assembled.text.startswith(ContextAssembler.render_block(calls[0], {"summary": "short", "items": []}))
    assert TRUNCATION_MARKER in assembled.text
    assert assembled.truncated == ["large", "late"]
    assert assembled.succeeded == ["small", "large"]
    assert assembled.dropped == ["late"]
    assert "never fits" not in assembled.text


def test_render_block_lists_arguments_before_data():
    block = ContextAssembler.render_block(
        FunctionCall("list_recent_events", hours=12),
        {"summary": "3 events in the last 12 hours", "count": 3},
    )
    header, body = block.split("\n", 1)
    assert header == "[list_recent_events] 3 events in the last 12 hours"
    assert body.startswith('{"arguments":{"hours":12}')
