"""Requester context resolved from request headers."""
from __future__ import annotations

from dataclasses import dataclass

from fastapi import Header


@dataclass
class RequesterContext:
    requester_id: str | None
    source: str


def _normalize_requester(value: str | None) -> str | None:
    text = (value or "").strip()
    if not text:
        return None
    return text[:128]


def get_requester_context(
    x_requester_id: str | None = Header(default=None, alias="X-Requester-ID"),
) -> RequesterContext:
    """Resolve the optional requester identity for audit records."""
    requester_id = _normalize_requester(x_requester_id)
    return RequesterContext(
        requester_id=requester_id,
        source="header" if requester_id else "anonymous",
    )
