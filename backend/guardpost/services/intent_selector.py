"""Deterministic mapping from a free-text question to registry functions."""
from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from guardpost.services.function_registry import (
    CATEGORY_KEYWORDS,
    FunctionCall,
    FunctionCategory,
    FunctionRegistry,
)


FALLBACK_FUNCTION = "system_snapshot"
RECENT_EVENTS_FUNCTION = "list_recent_events"
OFF_PATROL_FUNCTION = "list_off_duty_patrol_units"
ZONE_FUNCTION = "zone_overview"
MAX_WINDOW_HOURS = 24 * 30

NUMBER_WORDS = {
    "a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6,
    "seven": 7, "eight": 8, "nine": 9, "ten": 10, "twelve": 12, "twenty four": 24,
}
UNIT_HOURS = {"hour": 1, "hr": 1, "day": 24, "week": 168, "month": 720}
FIXED_WINDOWS: Tuple[Tuple[str, int], ...] = (
    ("last night", 12),
    ("overnight", 12),
    ("tonight", 12),
    ("this morning", 12),
    ("yesterday", 48),
    ("today", 24),
    ("this week", 168),
    ("this month", 720),
)

WINDOW_PATTERN = re.compile(
    r"\b(?:last|past|previous|within)\s+(?:the\s+)?"
    r"(\d{1,3}|a|an|one|two|three|four|five|six|seven|eight|nine|ten|twelve|twenty four)?\s*"
    r"(hour|hr|day|week|month)s?\b"
)
ZONE_PATTERNS = (
    re.compile(r"\bzone\s+([a-z]|\d{1,3})\b"),
    re.compile(r"\b(?:in|at|near|around|for|of)\s+(?:the\s+)?([a-z0-9]+(?:\s+[a-z0-9]+)?)\s+(?:zone|area|sector)\b"),
    re.compile(r"\b((?:north|south|east|west|main|rear|front|back)\s+(?:gate|wing|entrance|building|exit|lot|door))\b"),
    re.compile(r"\b(parking lot|emergency exit|reception area|main entrance)\b"),
)
NON_ZONE_WORDS = {
    "this", "that", "which", "what", "each", "every", "any", "the", "safest", "whole",
    "is", "are", "was", "has", "had", "of", "to", "in", "at", "on", "for", "and", "or", "now",
    "all", "most", "least", "my", "our", "your", "their", "its", "a", "an", "one", "another", "other",
}


def normalize_query(text: str) -> str:
    """Lowercase, turn punctuation into spaces and collapse whitespace."""
    return " ".join(re.sub(r"[^a-z0-9]+", " ", str(text or "").lower()).split())


def _contains(padded: str, phrase: str) -> bool:
    return f" {phrase} " in padded


@dataclass
class SelectionTrace:
    """What matched, for logging and tests."""

    categories: List[str] = field(default_factory=list)
    phrases: List[str] = field(default_factory=list)
    window_hours: Optional[int] = None
    zone: Optional[str] = None
    fallback: bool = False


class IntentSelector:
    """Select registry functions from trigger phrases and category keywords.

    Matching depends only on the query text and the registry, never on the
    data in the store, so the same text always yields the same calls.
    """

    def __init__(self, registry: FunctionRegistry, cap: int = 5) -> None:
        self.registry = registry
        self.cap = max(1, int(cap))
        self._phrase_owners: Dict[str, List[Tuple[str, bool]]] = defaultdict(list)
        for function in registry.entries():
            for phrase in function.triggers:
                self._phrase_owners[normalize_query(phrase)].append((function.name, False))
            for phrase in function.scoped_triggers:
                self._phrase_owners[normalize_query(phrase)].append((function.name, True))
        # Longest phrases claim their words first so "not on patrol" is not also read as "on patrol".
        self._phrases = sorted(self._phrase_owners, key=lambda p: (-len(p.split()), p))

    def select(self, query: str) -> List[FunctionCall]:
        return self.select_with_trace(query)[0]

    def select_with_trace(self, query: str) -> Tuple[List[FunctionCall], SelectionTrace]:
        text = normalize_query(query)
        padded = f" {text} "
        trace = SelectionTrace()

        categories: Set[FunctionCategory] = {
            category
            for category, keywords in CATEGORY_KEYWORDS.items()
            if any(_contains(padded, normalize_query(keyword)) for keyword in keywords)
        }

        direct: Set[str] = set()
        scoped: Set[str] = set()
        masked = padded
        for phrase in self._phrases:
            if not _contains(masked, phrase):
                continue
            trace.phrases.append(phrase)
            masked = masked.replace(f" {phrase} ", " " + " ".join("#" * len(phrase.split())) + " ")
            for name, is_scoped in self._phrase_owners[phrase]:
                (scoped if is_scoped else direct).add(name)

        window = self.derive_window_hours(text)
        zone = self.derive_zone(text)
        trace.window_hours = window
        trace.zone = zone
        if window is not None and self.registry.get(RECENT_EVENTS_FUNCTION):
            direct.add(RECENT_EVENTS_FUNCTION)
        if zone is not None and self.registry.get(ZONE_FUNCTION):
            direct.add(ZONE_FUNCTION)

        ranked: Dict[FunctionCategory, List[str]] = {}
        for category in FunctionCategory:
            entries = [function for function in self.registry.entries() if function.category == category]
            mentioned = category in categories
            hits = [
                f.name for f in entries
                if f.name in direct or (mentioned and f.name in scoped)
            ]
            defaults = [f.name for f in entries if mentioned and f.default and f.name not in hits]
            if hits or defaults:
                ranked[category] = hits + defaults
        trace.categories = [category.value for category in ranked]

        names: List[str] = []
        depth = max((len(items) for items in ranked.values()), default=0)
        for rank in range(depth):
            for items in ranked.values():
                if rank < len(items) and items[rank] not in names and len(names) < self.cap:
                    names.append(items[rank])

        if not names:
            trace.fallback = True
            fallback = FALLBACK_FUNCTION if self.registry.get(FALLBACK_FUNCTION) else self.registry.names()[0]
            names = [fallback]

        return [self._call_for(name, window, zone) for name in names], trace

    @staticmethod
    def _call_for(name: str, window: Optional[int], zone: Optional[str]) -> FunctionCall:
        if name in (RECENT_EVENTS_FUNCTION, OFF_PATROL_FUNCTION):
            return FunctionCall(name=name, hours=window)
        if name == ZONE_FUNCTION:
            return FunctionCall(name=name, zone=zone)
        return FunctionCall(name=name)

    @staticmethod
    def derive_window_hours(text: str) -> Optional[int]:
        """Event window implied by temporal phrases, in hours."""
        match = WINDOW_PATTERN.search(text)
        if match:
            amount_text = match.group(1) or "one"
            amount = int(amount_text) if amount_text.isdigit() else NUMBER_WORDS.get(amount_text, 1)
            hours = max(1, amount) * UNIT_HOURS[match.group(2)]
            return min(hours, MAX_WINDOW_HOURS)
        padded = f" {text} "
        for phrase, hours in FIXED_WINDOWS:
            if _contains(padded, phrase):
                return hours
        return None

    @staticmethod
    def derive_zone(text: str) -> Optional[str]:
        """Zone named in the query text, if any."""
        for pattern in ZONE_PATTERNS:
            for match in pattern.finditer(text):
                candidate = match.group(1).strip()
                if pattern is ZONE_PATTERNS[0]:
                    return f"zone {candidate}"
                if candidate.split()[0] in NON_ZONE_WORDS:
                    continue
                return candidate
        return None
