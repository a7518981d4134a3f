"""Natural-language security query orchestrator."""

from __future__ import annotations

import asyncio
import math
import re
import threading
import time
from collections import Counter, deque
from enum import Enum
from typing import Any, Callable, List, Optional

from guardpost.core.config import get_settings
from guardpost.core.errors import InputValidationError, LoggingError
from guardpost.core.logging import logger
from guardpost.core.profile import AnalystProfile
from guardpost.models.query import AIQueryResponse, QueryLogEntry, QueryOutcome
from guardpost.services.completion_client import (
    CompletionClient,
    CompletionPrompt,
    CompletionResult,
    build_completion_client,
)
from guardpost.services.context_assembler import ContextAssembler
from guardpost.services.entity_store import EntityStore, entity_store, utc_now
from guardpost.services.function_registry import FunctionRegistry
from guardpost.services.intent_selector import IntentSelector
from guardpost.services.query_log import QueryLogStore, query_log_store


class QueryStage(str, Enum):
    """Lifecycle of one query through the pipeline."""

    RECEIVED = "received"
    FUNCTIONS_SELECTED = "functions_selected"
    CONTEXT_ASSEMBLED = "context_assembled"
    COMPLETION_REQUESTED = "completion_requested"
    COMPLETED = "completed"
    DEGRADED = "degraded"
    LOGGED = "logged"
    RETURNED = "returned"


class SecurityQueryOrchestrator:
    """Answers free-text security questions from live store data.

    Every processed query ends in exactly one query log entry. Only a blank
    query raises; every other failure degrades to the apology answer.
    """

    def __init__(
        self,
        store: Optional[EntityStore] = None,
        log_store: Optional[QueryLogStore] = None,
        completion_client: Optional[CompletionClient] = None,
        profile: Optional[AnalystProfile] = None,
        clock: Callable[[], Any] = utc_now,
    ) -> None:
        self.settings = get_settings()
        self.profile = profile or AnalystProfile.from_settings(self.settings)
        self.store = store or entity_store
        self.log_store = log_store or query_log_store
        self.registry = FunctionRegistry(
            self.store,
            default_event_hours=self.profile.default_event_hours,
            clock=clock,
        )
        self.selector = IntentSelector(self.registry, cap=self.profile.selection_cap)
        self.assembler = ContextAssembler(self.registry, max_chars=self.profile.max_context_chars)
        self.completion_client = completion_client or build_completion_client(
            self.settings,
            timeout_seconds=self.profile.completion_timeout_seconds,
        )

        self._metrics_lock = threading.Lock()
        self._latency_samples_ms = deque(maxlen=max(10, int(self.settings.analyst_metrics_window_size)))
        self._route_counters: Counter[str] = Counter()

    async def process_query(self, query: str, requester_id: Optional[str] = None) -> AIQueryResponse:
        """Select, read, complete, log. Raises only InputValidationError."""
        started = time.perf_counter()
        text = (query or "").strip()
        if not text:
            raise InputValidationError("Query must not be empty")

        stage = QueryStage.RECEIVED
        functions_used: List[str] = []
        answer = self.profile.apology_text
        outcome = QueryOutcome.DEGRADED
        failure: Optional[str] = None

        try:
            calls, trace = self.selector.select_with_trace(text)
            stage = QueryStage.FUNCTIONS_SELECTED
            logger.debug(
                "Registry functions selected",
                functions=[call.name for call in calls],
                categories=trace.categories,
                window_hours=trace.window_hours,
                zone=trace.zone,
                fallback=trace.fallback,
            )

            assembled = await self.assembler.assemble(calls)
            functions_used = list(assembled.succeeded)
            stage = QueryStage.CONTEXT_ASSEMBLED

            prompt = CompletionPrompt(
                system=self.profile.role_instructions,
                context=assembled.text,
                query=text,
            )
            stage = QueryStage.COMPLETION_REQUESTED
            result: CompletionResult = await self.completion_client.complete(prompt)

            cleaned = self._sanitize_answer(result.text) if result.ok else ""
            if cleaned:
                answer = cleaned
                outcome = QueryOutcome.COMPLETED
                stage = QueryStage.COMPLETED
            else:
                failure = result.error or "empty answer"
                stage = QueryStage.DEGRADED
        except Exception as exc:
            failure = f"{type(exc).__name__}: {exc}"
            logger.error("Security query pipeline failed", stage=stage.value, error=str(exc))
            stage = QueryStage.DEGRADED

        processing_time = round((time.perf_counter() - started) * 1000, 2)

        entry = QueryLogEntry(
            log_id=self.log_store.new_log_id(),
            query=text,
            response=answer,
            requester_id=requester_id,
            timestamp=utc_now(),
            execution_time=processing_time,
            functions_used=functions_used,
            status=outcome,
        )
        try:
            await asyncio.to_thread(self.log_store.append, entry)
            stage = QueryStage.LOGGED
        except LoggingError as exc:
            logger.error("Query audit log write failed", log_id=entry.log_id, error=str(exc))

        self._record_query_metric(outcome.value, processing_time, success=outcome == QueryOutcome.COMPLETED)
        log = logger.info if outcome == QueryOutcome.COMPLETED else logger.warning
        log(
            "Security query processed",
            query=text[:50] + "..." if len(text) > 50 else text,
            outcome=outcome.value,
            stage=stage.value,
            provider=getattr(self.completion_client, "provider", "unknown"),
            functions_used=functions_used,
            failure=failure,
            processing_time_ms=processing_time,
        )

        return AIQueryResponse(
            response=answer,
            execution_time=processing_time,
            functions_used=functions_used,
        )

    def _sanitize_answer(self, answer: str) -> str:
        """Replace internal function names with plain titles and redact secrets."""
        text = (answer or "").strip()
        if not text:
            return ""
        for function in self.registry.entries():
            text = re.sub(rf"\[?\b{re.escape(function.name)}\b\]?", function.title, text)
        for secret in self.settings.secret_values():
            text = text.replace(secret, "[redacted]")
        return text.strip()

    def recent_queries(self, requester_id: Optional[str] = None, limit: int = 20) -> List[QueryLogEntry]:
        return self.log_store.list_recent(requester_id=requester_id, limit=limit)

    def _record_query_metric(self, route: str, latency_ms: float, success: bool) -> None:
        latency_ms = max(0.0, float(latency_ms))
        with self._metrics_lock:
            self._latency_samples_ms.append(latency_ms)
            self._route_counters[f"route:{route}"] += 1
            self._route_counters[f"success:{'yes' if success else 'no'}"] += 1
            if latency_ms <= (self.profile.completion_timeout_seconds * 1000):
                self._route_counters["latency:within_budget"] += 1
            else:
                self._route_counters["latency:over_budget"] += 1

    def get_latency_metrics(self) -> dict[str, Any]:
        with self._metrics_lock:
            samples = list(self._latency_samples_ms)
            counters = dict(self._route_counters)

        if not samples:
            return {
                "status": "empty",
                "samples_window": 0,
                "target_ms": self.profile.completion_timeout_seconds * 1000,
                "routes": counters,
            }

        samples.sort()
        count = len(samples)
        avg_ms = sum(samples) / count
        p50_ms = samples[min(count - 1, int(math.floor((count - 1) * 0.50)))]
        p95_ms = samples[min(count - 1, int(math.ceil((count - 1) * 0.95)))]
        return {
            "status": "ok",
            "samples_window": count,
            "target_ms": self.profile.completion_timeout_seconds * 1000,
            "avg_ms": round(avg_ms, 2),
            "p50_ms": round(p50_ms, 2),
            "p95_ms": round(p95_ms, 2),
            "min_ms": round(samples[0], 2),
            "max_ms": round(samples[-1], 2),
            "routes": counters,
        }

    def get_runtime_info(self) -> dict[str, Any]:
        return {
            "provider": getattr(self.completion_client, "provider", "unknown"),
            "model": getattr(self.completion_client, "model", ""),
            "completion_timeout_seconds": self.profile.completion_timeout_seconds,
            "max_context_chars": self.profile.max_context_chars,
            "selection_cap": self.profile.selection_cap,
            "registry_functions": len(self.registry.names()),
            "metrics_window_size": int(self.settings.analyst_metrics_window_size),
        }


# Singleton instance
security_query_orchestrator = SecurityQueryOrchestrator()
