"""Catalog of named read operations the analyst can ground answers on."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from guardpost.core.errors import DataReadError
from guardpost.core.logging import logger
from guardpost.models.query import RegistryFunctionInfo
from guardpost.models.security import (
    SEVERITY_RANK,
    Camera,
    CameraStatus,
    EventSeverity,
    EventType,
    PatrolUnit,
    PatrolUnitStatus,
    Personnel,
    PersonnelStatus,
    SecurityEvent,
)
from guardpost.services.entity_store import EntityStore, utc_now


UNKNOWN_SOURCE = "unknown source"
MAX_LISTED_EVENTS = 25


class FunctionCategory(str, Enum):
    """Groups of registry functions, in selection priority order."""

    PATROL_UNITS = "patrol_units"
    PERSONNEL = "personnel"
    CAMERAS = "cameras"
    EVENTS = "events"
    ZONES = "zones"
    SNAPSHOT = "snapshot"


@dataclass(frozen=True)
class FunctionCall:
    """One selected registry function and the arguments derived for it."""

    name: str
    hours: Optional[int] = None
    zone: Optional[str] = None

    def arguments(self) -> Dict[str, Any]:
        return {k: v for k, v in (("hours", self.hours), ("zone", self.zone)) if v is not None}


Handler = Callable[["ReadContext", FunctionCall], Dict[str, Any]]


@dataclass(frozen=True)
class RegistryFunction:
    """A registry entry.

    ``triggers`` select the entry on their own. ``scoped_triggers`` only count
    when a keyword of the entry's category also appears in the query.
    ``default`` entries are selected whenever their category is mentioned.
    """

    name: str
    title: str
    description: str
    category: FunctionCategory
    handler: Handler
    triggers: Tuple[str, ...] = ()
    scoped_triggers: Tuple[str, ...] = ()
    default: bool = False


@dataclass
class ReadContext:
    store: EntityStore
    now: datetime
    default_event_hours: int = 24
    _sources: Optional[Dict[str, str]] = field(default=None, repr=False)

    def source_label(self, source_id: str) -> str:
        """Resolve a loose event source key to a display label."""
        if self._sources is None:
            self._sources = _build_source_index(self.store)
        return self._sources.get(str(source_id or "").strip().lower(), UNKNOWN_SOURCE)


def _build_source_index(store: EntityStore) -> Dict[str, str]:
    index: Dict[str, str] = {}
    for unit in store.list_patrol_units():
        label = f"{unit.name} (patrol dog)"
        for key in (unit.id, unit.name):
            index.setdefault(key.strip().lower(), label)
    for person in store.list_personnel():
        label = f"{person.name} (guard {person.employee_id})"
        for key in (person.id, person.employee_id, person.name):
            index.setdefault(key.strip().lower(), label)
    for camera in store.list_cameras():
        label = f"{camera.name} ({camera.camera_id})"
        for key in (camera.id, camera.camera_id):
            index.setdefault(key.strip().lower(), label)
    return index


def _plural(count: int, singular: str, plural: Optional[str] = None) -> str:
    return f"{count} {singular if count == 1 else (plural or singular + 's')}"


def _as_utc(value: datetime) -> datetime:
    """Naive timestamps are stored as UTC; read them back the same way."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _hours_since(moment: Optional[datetime], now: datetime) -> Optional[float]:
    if moment is None:
        return None
    return round(max(0.0, (_as_utc(now) - _as_utc(moment)).total_seconds() / 3600.0), 1)


def _status_counts(values: Iterable[str], statuses: Iterable[Enum]) -> Dict[str, int]:
    counter = Counter(values)
    return {status.value: int(counter.get(status.value, 0)) for status in statuses}


def _counts_text(counts: Dict[str, int]) -> str:
    return ", ".join(f"{count} {status.replace('_', ' ')}" for status, count in counts.items())


def _zone_matches(record_zone: str, wanted: str) -> bool:
    def norm(text: str) -> str:
        words = str(text or "").lower().split()
        if words and words[0] == "zone":
            words = words[1:]
        return " ".join(words)

    return bool(wanted) and norm(record_zone) == norm(wanted)


# --- Row shapes -----------------------------------------------------------

def _patrol_row(unit: PatrolUnit, now: datetime) -> Dict[str, Any]:
    return {
        "name": unit.name,
        "breed": unit.breed,
        "status": unit.status.value,
        "on_duty": unit.is_on_duty,
        "zone": unit.location.zone,
        "handler": unit.handler.name,
        "handler_contact": unit.handler.contact,
        "hours_since_patrol": _hours_since(unit.last_patrol, now),
    }


def _personnel_row(person: Personnel, now: datetime) -> Dict[str, Any]:
    return {
        "name": person.name,
        "employee_id": person.employee_id,
        "status": person.status.value,
        "zone": person.assigned_zone,
        "activity": person.current_activity,
        "shift_ends_in_hours": round((_as_utc(person.shift_end) - _as_utc(now)).total_seconds() / 3600.0, 1),
        "contact": person.contact,
    }


def _camera_row(camera: Camera, now: datetime) -> Dict[str, Any]:
    return {
        "camera_id": camera.camera_id,
        "name": camera.name,
        "status": camera.status.value,
        "zone": camera.location.zone,
        "where": camera.location.description,
        "recording": camera.is_recording,
        "minutes_since_ping": round(max(0.0, (_as_utc(now) - _as_utc(camera.last_ping)).total_seconds() / 60.0), 1),
    }


def _event_row(event: SecurityEvent, ctx: ReadContext) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "type": event.type.value,
        "severity": event.severity.value,
        "description": event.description,
        "zone": event.location.zone,
        "source": ctx.source_label(event.source_id),
        "source_type": event.source_type.value,
        "resolved": event.is_resolved,
        "hours_ago": _hours_since(event.occurred_at, ctx.now),
    }
    if event.is_resolved and event.resolved_by:
        row["resolved_by"] = event.resolved_by
    if event.metadata and event.metadata.confidence is not None:
        row["confidence"] = event.metadata.confidence
    return row


def health_band(unit: PatrolUnit) -> str:
    """Advisory band from the last recorded vitals."""
    metrics = unit.health_metrics
    if metrics.heart_rate > 100 or metrics.temperature > 102:
        return "warning"
    if metrics.heart_rate < 60 or metrics.temperature < 100:
        return "concern"
    return "normal"


# --- Patrol units ---------------------------------------------------------

def _list_active_patrol_units(ctx: ReadContext, call: FunctionCall) -> Dict[str, Any]:
    units = ctx.store.list_patrol_units(status=PatrolUnitStatus.ACTIVE)
    return {
        "summary": f"{_plural(len(units), 'active patrol unit')}",
        "count": len(units),
        "units": [_patrol_row(unit, ctx.now) for unit in units],
    }


def _list_patrol_units_by_status(ctx: ReadContext, call: FunctionCall) -> Dict[str, Any]:
    units = ctx.store.list_patrol_units()
    grouped: Dict[str, List[Dict[str, Any]]] = {status.value: [] for status in PatrolUnitStatus}
    for unit in units:
        grouped[unit.status.value].append(_patrol_row(unit, ctx.now))
    counts = {status: len(rows) for status, rows in grouped.items()}
    return {
        "summary": f"{_plural(len(units), 'patrol unit')}: {_counts_text(counts)}",
        "total": len(units),
        "by_status": grouped,
    }


def _count_patrol_units_by_status(ctx: ReadContext, call: FunctionCall) -> Dict[str, Any]:
    units = ctx.store.list_patrol_units()
    counts = _status_counts((unit.status.value for unit in units), PatrolUnitStatus)
    on_duty = sum(1 for unit in units if unit.is_on_duty)
    return {
        "summary": f"{_plural(len(units), 'patrol unit')} ({_counts_text(counts)}); {on_duty} on duty",
        "total": len(units),
        "counts": counts,
        "on_duty": on_duty,
    }


def _list_off_duty_patrol_units(ctx: ReadContext, call: FunctionCall) -> Dict[str, Any]:
    units = ctx.store.list_patrol_units()
    off = [unit for unit in units if not unit.is_on_duty or unit.status != PatrolUnitStatus.ACTIVE]
    result: Dict[str, Any] = {
        "summary": f"{_plural(len(off), 'patrol unit')} not on patrol out of {len(units)}",
        "count": len(off),
        "units": [_patrol_row(unit, ctx.now) for unit in off],
    }
    if call.hours:
        cutoff = _as_utc(ctx.now) - timedelta(hours=call.hours)
        stale = [unit for unit in units if _as_utc(unit.last_patrol) < cutoff]
        result["window_hours"] = call.hours
        result["not_patrolled_in_window"] = [unit.name for unit in stale]
        result["summary"] += f"; {_plural(len(stale), 'unit')} with no patrol in the last {call.hours} hours"
    return result


def _patrol_unit_health(ctx: ReadContext, call: FunctionCall) -> Dict[str, Any]:
    units = ctx.store.list_patrol_units()
    rows = []
    for unit in units:
        rows.append(
            {
                "name": unit.name,
                "status": unit.status.value,
                "band": health_band(unit),
                "heart_rate": unit.health_metrics.heart_rate,
                "temperature_f": unit.health_metrics.temperature,
                "days_since_checkup": round(_hours_since(unit.health_metrics.last_checkup, ctx.now) / 24.0, 1),
            }
        )
    bands = Counter(row["band"] for row in rows)
    return {
        "summary": (
            f"{_plural(len(rows), 'patrol unit')} checked: {bands.get('normal', 0)} normal, "
            f"{bands.get('warning', 0)} warning, {bands.get('concern', 0)} concern (advisory)"
        ),
        "units": rows,
    }


# --- Personnel ------------------------------------------------------------

def _list_on_duty_personnel(ctx: ReadContext, call: FunctionCall) -> Dict[str, Any]:
    people = ctx.store.list_personnel(status=PersonnelStatus.ON_DUTY)
    return {
        "summary": f"{_plural(len(people), 'guard')} on duty",
        "count": len(people),
        "personnel": [_personnel_row(person, ctx.now) for person in people],
    }


def _list_personnel_by_status(ctx: ReadContext, call: FunctionCall) -> Dict[str, Any]:
    people = ctx.store.list_personnel()
    grouped: Dict[str, List[Dict[str, Any]]] = {status.value: [] for status in PersonnelStatus}
    for person in people:
        grouped[person.status.value].append(_personnel_row(person, ctx.now))
    counts = {status: len(rows) for status, rows in grouped.items()}
    return {
        "summary": f"{_plural(len(people), 'guard')}: {_counts_text(counts)}",
        "total": len(people),
        "by_status": grouped,
    }


def _count_personnel_by_status(ctx: ReadContext, call: FunctionCall) -> Dict[str, Any]:
    people = ctx.store.list_personnel()
    counts = _status_counts((person.status.value for person in people), PersonnelStatus)
    return {
        "summary": f"{_plural(len(people), 'guard')} ({_counts_text(counts)})",
        "total": len(people),
        "counts": counts,
    }


# --- Cameras --------------------------------------------------------------

def _list_offline_cameras(ctx: ReadContext, call: FunctionCall) -> Dict[str, Any]:
    cameras = ctx.store.list_cameras()
    down = [camera for camera in cameras if camera.status != CameraStatus.ONLINE]
    counts = _status_counts((camera.status.value for camera in down), CameraStatus)
    return {
        "summary": (
            f"{_plural(counts['offline'], 'offline camera')}, {counts['maintenance']} in maintenance, "
            f"{counts['error']} in error ({len(down)} of {len(cameras)} cameras not online)"
        ),
        "offline": counts["offline"],
        "maintenance": counts["maintenance"],
        "error": counts["error"],
        "cameras": [_camera_row(camera, ctx.now) for camera in down],
    }


def _list_cameras_by_status(ctx: ReadContext, call: FunctionCall) -> Dict[str, Any]:
    cameras = ctx.store.list_cameras()
    grouped: Dict[str, List[Dict[str, Any]]] = {status.value: [] for status in CameraStatus}
    for camera in cameras:
        grouped[camera.status.value].append(_camera_row(camera, ctx.now))
    counts = {status: len(rows) for status, rows in grouped.items()}
    return {
        "summary": f"{_plural(len(cameras), 'camera')}: {_counts_text(counts)}",
        "total": len(cameras),
        "by_status": grouped,
    }


def _count_cameras_by_status(ctx: ReadContext, call: FunctionCall) -> Dict[str, Any]:
    cameras = ctx.store.list_cameras()
    counts = _status_counts((camera.status.value for camera in cameras), CameraStatus)
    recording = sum(1 for camera in cameras if camera.is_recording)
    return {
        "summary": f"{_plural(len(cameras), 'camera')} ({_counts_text(counts)}); {recording} recording",
        "total": len(cameras),
        "counts": counts,
        "recording": recording,
    }


# --- Events ---------------------------------------------------------------

def _list_recent_events(ctx: ReadContext, call: FunctionCall) -> Dict[str, Any]:
    hours = call.hours or ctx.default_event_hours
    events = ctx.store.list_events(since=ctx.now - timedelta(hours=hours))
    unresolved = sum(1 for event in events if not event.is_resolved)
    return {
        "summary": f"{_plural(len(events), 'event')} in the last {hours} hours ({unresolved} unresolved)",
        "window_hours": hours,
        "count": len(events),
        "events": [_event_row(event, ctx) for event in events[:MAX_LISTED_EVENTS]],
    }


def _list_unresolved_events(ctx: ReadContext, call: FunctionCall) -> Dict[str, Any]:
    events = ctx.store.list_events(resolved=False)
    events.sort(key=lambda event: SEVERITY_RANK[event.severity])
    counts = _status_counts((event.severity.value for event in events), EventSeverity)
    worst = [f"{count} {severity}" for severity, count in counts.items() if count]
    detail = f" ({', '.join(worst)})" if worst else ""
    return {
        "summary": f"{_plural(len(events), 'unresolved event')}{detail}",
        "count": len(events),
        "events": [_event_row(event, ctx) for event in events[:MAX_LISTED_EVENTS]],
    }


def _count_events_by_severity(ctx: ReadContext, call: FunctionCall) -> Dict[str, Any]:
    events = ctx.store.list_events()
    severities = _status_counts((event.severity.value for event in events), EventSeverity)
    types = _status_counts((event.type.value for event in events), EventType)
    unresolved = sum(1 for event in events if not event.is_resolved)
    return {
        "summary": f"{_plural(len(events), 'event')} logged ({_counts_text(severities)}); {unresolved} unresolved",
        "total": len(events),
        "by_severity": severities,
        "by_type": types,
        "unresolved": unresolved,
    }


# --- Zones and snapshot ---------------------------------------------------

def _zone_overview(ctx: ReadContext, call: FunctionCall) -> Dict[str, Any]:
    units = ctx.store.list_patrol_units()
    people = ctx.store.list_personnel()
    cameras = ctx.store.list_cameras()
    events = ctx.store.list_events(resolved=False)

    if call.zone:
        zone_units = [u for u in units if _zone_matches(u.location.zone, call.zone)]
        zone_people = [p for p in people if _zone_matches(p.assigned_zone, call.zone)]
        zone_cameras = [c for c in cameras if _zone_matches(c.location.zone, call.zone)]
        zone_events = [e for e in events if _zone_matches(e.location.zone, call.zone)]
        down = sum(1 for c in zone_cameras if c.status != CameraStatus.ONLINE)
        return {
            "summary": (
                f"Zone {call.zone}: {_plural(len(zone_units), 'patrol unit')}, {_plural(len(zone_people), 'guard')}, "
                f"{_plural(len(zone_cameras), 'camera')} ({down} not online), "
                f"{_plural(len(zone_events), 'unresolved event')}"
            ),
            "zone": call.zone,
            "patrol_units": [_patrol_row(u, ctx.now) for u in zone_units],
            "personnel": [_personnel_row(p, ctx.now) for p in zone_people],
            "cameras": [_camera_row(c, ctx.now) for c in zone_cameras],
            "unresolved_events": [_event_row(e, ctx) for e in zone_events],
        }

    zones: Dict[str, Dict[str, int]] = {}

    def bucket(name: str) -> Dict[str, int]:
        return zones.setdefault(
            name or "unassigned",
            {"patrol_units": 0, "guards": 0, "cameras_online": 0, "cameras_down": 0, "unresolved_events": 0},
        )

    for unit in units:
        bucket(unit.location.zone)["patrol_units"] += 1
    for person in people:
        bucket(person.assigned_zone)["guards"] += 1
    for camera in cameras:
        key = "cameras_online" if camera.status == CameraStatus.ONLINE else "cameras_down"
        bucket(camera.location.zone)[key] += 1
    for event in events:
        bucket(event.location.zone)["unresolved_events"] += 1

    flagged = sorted(name for name, row in zones.items() if row["unresolved_events"] or row["cameras_down"])
    return {
        "summary": f"{_plural(len(zones), 'zone')} monitored; {len(flagged)} with open events or cameras down",
        "zones": dict(sorted(zones.items())),
        "zones_needing_attention": flagged,
    }


def _system_snapshot(ctx: ReadContext, call: FunctionCall) -> Dict[str, Any]:
    units = ctx.store.list_patrol_units()
    people = ctx.store.list_personnel()
    cameras = ctx.store.list_cameras()
    events = ctx.store.list_events()

    unit_counts = _status_counts((u.status.value for u in units), PatrolUnitStatus)
    people_counts = _status_counts((p.status.value for p in people), PersonnelStatus)
    camera_counts = _status_counts((c.status.value for c in cameras), CameraStatus)
    unresolved = [e for e in events if not e.is_resolved]
    unresolved.sort(key=lambda event: SEVERITY_RANK[event.severity])
    return {
        "summary": (
            f"{_plural(len(units), 'patrol unit')} ({unit_counts['active']} active), "
            f"{_plural(len(people), 'guard')} ({people_counts['on_duty']} on duty), "
            f"{_plural(len(cameras), 'camera')} ({camera_counts['offline']} offline), "
            f"{_plural(len(events), 'event')} ({len(unresolved)} unresolved)"
        ),
        "patrol_units": {"total": len(units), "counts": unit_counts, "on_duty": sum(1 for u in units if u.is_on_duty)},
        "personnel": {"total": len(people), "counts": people_counts},
        "cameras": {
            "total": len(cameras),
            "counts": camera_counts,
            "not_online": [c.camera_id for c in cameras if c.status != CameraStatus.ONLINE],
        },
        "events": {
            "total": len(events),
            "unresolved": len(unresolved),
            "most_severe_open": [_event_row(e, ctx) for e in unresolved[:5]],
        },
    }


COUNT_TRIGGERS = ("how many", "count", "number of", "total", "stats", "statistics")
LIST_TRIGGERS = ("status", "statuses", "list", "all", "roster", "show", "which")

DEFAULT_FUNCTIONS: Tuple[RegistryFunction, ...] = (
    RegistryFunction(
        name="list_active_patrol_units",
        title="active patrol units",
        description="Guard dogs currently active, with zone, handler and time since last patrol.",
        category=FunctionCategory.PATROL_UNITS,
        handler=_list_active_patrol_units,
        triggers=("on patrol", "patrolling", "deployed dogs", "active dogs", "active units"),
        scoped_triggers=("active", "available", "on duty", "working"),
    ),
    RegistryFunction(
        name="list_patrol_units_by_status",
        title="patrol units by status",
        description="Every guard dog grouped by status: active, resting, offline, medical.",
        category=FunctionCategory.PATROL_UNITS,
        handler=_list_patrol_units_by_status,
        scoped_triggers=LIST_TRIGGERS,
        default=True,
    ),
    RegistryFunction(
        name="count_patrol_units_by_status",
        title="patrol unit counts",
        description="Number of guard dogs per status and how many are on duty.",
        category=FunctionCategory.PATROL_UNITS,
        handler=_count_patrol_units_by_status,
        scoped_triggers=COUNT_TRIGGERS,
    ),
    RegistryFunction(
        name="list_off_duty_patrol_units",
        title="patrol units not on patrol",
        description="Guard dogs off duty, resting, offline or in medical care, with last patrol time.",
        category=FunctionCategory.PATROL_UNITS,
        handler=_list_off_duty_patrol_units,
        triggers=("not on patrol", "off patrol", "not patrolling", "missed patrol", "resting dogs"),
        scoped_triggers=("off duty", "not on duty", "resting", "medical", "inactive", "unavailable", "offline"),
    ),
    RegistryFunction(
        name="patrol_unit_health",
        title="patrol unit health",
        description="Advisory health band per guard dog from heart rate, temperature and last checkup.",
        category=FunctionCategory.PATROL_UNITS,
        handler=_patrol_unit_health,
        triggers=("heart rate", "temperature", "vitals", "checkup", "vet", "sick", "injured"),
        scoped_triggers=("health", "healthy", "condition"),
    ),
    RegistryFunction(
        name="list_on_duty_personnel",
        title="guards on duty",
        description="Security guards currently on duty with zone, activity and shift end.",
        category=FunctionCategory.PERSONNEL,
        handler=_list_on_duty_personnel,
        triggers=("on shift", "who is working", "who is on duty"),
        scoped_triggers=("on duty", "active", "available", "working"),
    ),
    RegistryFunction(
        name="list_personnel_by_status",
        title="guards by status",
        description="Every security guard grouped by status: on duty, off duty, break, emergency.",
        category=FunctionCategory.PERSONNEL,
        handler=_list_personnel_by_status,
        triggers=("on break",),
        scoped_triggers=LIST_TRIGGERS + ("off duty", "break", "emergency"),
        default=True,
    ),
    RegistryFunction(
        name="count_personnel_by_status",
        title="guard counts",
        description="Number of security guards per status.",
        category=FunctionCategory.PERSONNEL,
        handler=_count_personnel_by_status,
        scoped_triggers=COUNT_TRIGGERS,
    ),
    RegistryFunction(
        name="list_offline_cameras",
        title="cameras not online",
        description="Cameras that are offline, under maintenance or reporting errors.",
        category=FunctionCategory.CAMERAS,
        handler=_list_offline_cameras,
        triggers=(
            "offline", "down", "not working", "broken", "disconnected", "not recording",
            "outage", "malfunction", "malfunctioning", "blind spot", "blind spots",
        ),
        scoped_triggers=("maintenance", "error", "errors", "failed", "failing"),
    ),
    RegistryFunction(
        name="list_cameras_by_status",
        title="cameras by status",
        description="Every camera grouped by status with zone, recording flag and last ping.",
        category=FunctionCategory.CAMERAS,
        handler=_list_cameras_by_status,
        scoped_triggers=LIST_TRIGGERS + ("online", "recording"),
        default=True,
    ),
    RegistryFunction(
        name="count_cameras_by_status",
        title="camera counts",
        description="Number of cameras per status and how many are recording.",
        category=FunctionCategory.CAMERAS,
        handler=_count_cameras_by_status,
        scoped_triggers=COUNT_TRIGGERS,
    ),
    RegistryFunction(
        name="list_recent_events",
        title="recent security events",
        description="Security events inside a recent time window, newest first, with resolved sources.",
        category=FunctionCategory.EVENTS,
        handler=_list_recent_events,
        triggers=("recent", "latest", "lately", "happened", "what happened"),
        default=True,
    ),
    RegistryFunction(
        name="list_unresolved_events",
        title="unresolved security events",
        description="Open security events ordered by severity.",
        category=FunctionCategory.EVENTS,
        handler=_list_unresolved_events,
        triggers=(
            "unresolved", "open incidents", "outstanding", "pending", "breach", "breaches",
            "intrusion", "intrusions", "emergency", "emergencies", "critical",
        ),
        scoped_triggers=("open", "active", "current", "ongoing"),
    ),
    RegistryFunction(
        name="count_events_by_severity",
        title="event counts",
        description="Number of logged events per severity and type.",
        category=FunctionCategory.EVENTS,
        handler=_count_events_by_severity,
        triggers=("severity", "threat level", "threat percentage", "risk level"),
        scoped_triggers=COUNT_TRIGGERS,
    ),
    RegistryFunction(
        name="zone_overview",
        title="zone overview",
        description="Patrol units, guards, cameras and open events for one zone, or a per-zone breakdown.",
        category=FunctionCategory.ZONES,
        handler=_zone_overview,
        triggers=("safest", "most dangerous", "hotspot", "hotspots", "per zone", "by zone", "each zone"),
        default=True,
    ),
    RegistryFunction(
        name="system_snapshot",
        title="system snapshot",
        description="Cross-entity summary of patrol units, guards, cameras and events.",
        category=FunctionCategory.SNAPSHOT,
        handler=_system_snapshot,
        triggers=(
            "overview", "summary", "summarize", "status report", "sitrep", "situation",
            "everything", "overall", "snapshot", "dashboard", "threat assessment",
        ),
        default=True,
    ),
)

CATEGORY_KEYWORDS: Dict[FunctionCategory, Tuple[str, ...]] = {
    FunctionCategory.PATROL_UNITS: (
        "dog", "dogs", "k9", "k 9", "canine", "canines", "patrol", "patrols",
        "patrol unit", "patrol units", "unit", "units", "handler", "handlers",
    ),
    FunctionCategory.PERSONNEL: (
        "guard", "guards", "bodyguard", "bodyguards", "officer", "officers", "personnel",
        "staff", "employee", "employees", "security team", "shift", "shifts",
    ),
    FunctionCategory.CAMERAS: (
        "camera", "cameras", "cctv", "cam", "cams", "feed", "feeds", "footage", "surveillance",
    ),
    FunctionCategory.EVENTS: (
        "incident", "incidents", "alert", "alerts", "event", "events", "alarm", "alarms",
        "threat", "threats", "motion", "intruder", "intruders",
    ),
    FunctionCategory.ZONES: ("zone", "zones", "area", "areas", "sector", "sectors"),
    FunctionCategory.SNAPSHOT: (),
}


class FunctionRegistry:
    """Fixed, ordered catalog of read operations over the entity store."""

    def __init__(
        self,
        store: EntityStore,
        functions: Iterable[RegistryFunction] = DEFAULT_FUNCTIONS,
        default_event_hours: int = 24,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.default_event_hours = max(1, int(default_event_hours))
        self._clock = clock
        self._functions: Dict[str, RegistryFunction] = {}
        for function in functions:
            if function.name in self._functions:
                raise ValueError(f"Duplicate registry function: {function.name}")
            self._functions[function.name] = function

    def names(self) -> List[str]:
        return list(self._functions)

    def entries(self) -> List[RegistryFunction]:
        return list(self._functions.values())

    def get(self, name: str) -> Optional[RegistryFunction]:
        return self._functions.get(name)

    def position(self, name: str) -> int:
        return self.names().index(name)

    def describe(self) -> List[RegistryFunctionInfo]:
        return [
            RegistryFunctionInfo(
                name=function.name,
                title=function.title,
                description=function.description,
                category=function.category.value,
            )
            for function in self._functions.values()
        ]

    def read_context(self) -> ReadContext:
        return ReadContext(store=self.store, now=_as_utc(self._clock()), default_event_hours=self.default_event_hours)

    def execute(self, call: FunctionCall, ctx: Optional[ReadContext] = None) -> Dict[str, Any]:
        """Run one function; any failure surfaces as DataReadError."""
        function = self._functions.get(call.name)
        if function is None:
            raise DataReadError(call.name, "not a registered function")
        try:
            return function.handler(ctx or self.read_context(), call)
        except DataReadError:
            raise
        except Exception as exc:
            logger.warning("Registry function failed", function=call.name, error=str(exc))
            raise DataReadError(call.name, str(exc)) from exc
