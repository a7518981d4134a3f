"""Run selected registry functions and pack their results into a bounded context."""
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from guardpost.core.errors import DataReadError
from guardpost.core.logging import logger
from guardpost.services.function_registry import FunctionCall, FunctionRegistry


DATA_UNAVAILABLE = "data unavailable"
TRUNCATION_MARKER = " ...[truncated]"
BLOCK_SEPARATOR = "\n\n"
MIN_FRAGMENT_CHARS = 60


@dataclass
class AssembledContext:
    """Context text plus a record of what each selected function contributed."""

    text: str
    succeeded: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    truncated: List[str] = field(default_factory=list)
    dropped: List[str] = field(default_factory=list)
    results: Dict[str, Dict[str, Any]] = field(default_factory=dict)


class ContextAssembler:
    """Executes reads concurrently, serializes them in selection order."""

    def __init__(self, registry: FunctionRegistry, max_chars: int = 6000) -> None:
        self.registry = registry
        self.max_chars = max(200, int(max_chars))

    async def assemble(self, calls: Sequence[FunctionCall]) -> AssembledContext:
        outcomes = await asyncio.gather(*(self._run(call) for call in calls))

        assembled = AssembledContext(text="")
        blocks: List[str] = []
        used = 0
        for call, result in zip(calls, outcomes):
            if result is None:
                assembled.failed.append(call.name)
                block = f"[{call.name}] {DATA_UNAVAILABLE}"
            else:
                assembled.results[call.name] = result
                block = self.render_block(call, result)

            room = self.max_chars - used - (len(BLOCK_SEPARATOR) if blocks else 0)
            if len(block) <= room:
                blocks.append(block)
                used += len(block) + (len(BLOCK_SEPARATOR) if len(blocks) > 1 else 0)
                if result is not None:
                    assembled.succeeded.append(call.name)
                continue

            if result is not None:
                assembled.truncated.append(call.name)
            if room >= MIN_FRAGMENT_CHARS:
                fragment = block[: room - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER
                blocks.append(fragment)
                used += len(fragment) + (len(BLOCK_SEPARATOR) if len(blocks) > 1 else 0)
                if result is not None:
                    assembled.succeeded.append(call.name)
            elif result is not None:
                assembled.dropped.append(call.name)

        assembled.text = BLOCK_SEPARATOR.join(blocks)
        if assembled.truncated:
            logger.info(
                "Context budget reached",
                truncated=assembled.truncated,
                dropped=assembled.dropped,
                max_chars=self.max_chars,
            )
        return assembled

    async def _run(self, call: FunctionCall) -> Optional[Dict[str, Any]]:
        try:
            return await asyncio.to_thread(self.registry.execute, call)
        except DataReadError as exc:
            logger.warning("Registry data unavailable", function=call.name, error=str(exc))
            return None

    @staticmethod
    def render_block(call: FunctionCall, result: Dict[str, Any]) -> str:
        summary = str(result.get("summary") or "").strip()
        payload = {key: value for key, value in result.items() if key != "summary"}
        args = call.arguments()
        if args:
            payload = {"arguments": args, **payload}
        body = json.dumps(payload, ensure_ascii=True, separators=(",", ":"), default=str)
        header = f"[{call.name}] {summary}" if summary else f"[{call.name}]"
        return f"{header}\n{body}"
