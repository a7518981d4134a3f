"""Analyst profile: the fixed instructions and limits applied to every query."""
from __future__ import annotations

from dataclasses import dataclass

from guardpost.core.config import Settings, get_settings


ROLE_INSTRUCTIONS = """You are "Cchef", the security analyst for a site protected by guard dogs, security guards and CCTV cameras.

You are given a CONTEXT block with live data read from the security system moments ago, followed by an operator's question.

Rules:
1. Answer ONLY from the CONTEXT. If the context does not contain the answer, say that the data is not available.
2. Never invent dogs, guards, cameras, zones, events or numbers that are not in the context.
3. Quote exact counts and names from the context when they answer the question.
4. Suggest concrete next actions where relevant: dispatch a patrol unit, review camera footage, send maintenance, escalate to authorities.
5. Sections marked "data unavailable" could not be read; mention that the information is missing instead of guessing.
6. Do not mention internal labels from the context headers; describe the data in plain words.
7. Be clear and concise. Always prioritize safety."""


@dataclass(frozen=True)
class AnalystProfile:
    """Everything the pipeline needs to phrase and bound one completion request."""

    role_instructions: str
    max_context_chars: int
    completion_timeout_seconds: float
    apology_text: str
    selection_cap: int
    default_event_hours: int

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "AnalystProfile":
        settings = settings or get_settings()
        return cls(
            role_instructions=ROLE_INSTRUCTIONS,
            max_context_chars=max(500, int(settings.analyst_context_char_limit)),
            completion_timeout_seconds=max(0.1, float(settings.analyst_timeout_seconds)),
            apology_text=settings.analyst_apology_text.strip(),
            selection_cap=max(1, int(settings.analyst_selection_cap)),
            default_event_hours=max(1, int(settings.analyst_recent_event_hours)),
        )
