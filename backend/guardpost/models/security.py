"""Domain models for the monitored security deployment."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PatrolUnitStatus(str, Enum):
    """Operator-set status for a guard dog."""

    ACTIVE = "active"
    RESTING = "resting"
    OFFLINE = "offline"
    MEDICAL = "medical"


class PersonnelStatus(str, Enum):
    """Duty status for a human guard."""

    ON_DUTY = "on_duty"
    OFF_DUTY = "off_duty"
    BREAK = "break"
    EMERGENCY = "emergency"


class CameraStatus(str, Enum):
    """Reported CCTV camera status."""

    ONLINE = "online"
    OFFLINE = "offline"
    MAINTENANCE = "maintenance"
    ERROR = "error"


class EventType(str, Enum):
    MOTION_DETECTED = "motion_detected"
    INTRUSION_ALERT = "intrusion_alert"
    FACE_RECOGNIZED = "face_recognized"
    PATROL_COMPLETED = "patrol_completed"
    EMERGENCY = "emergency"
    SYSTEM_ALERT = "system_alert"


class EventSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class EventSourceType(str, Enum):
    CAMERA = "camera"
    DOG = "dog"
    GUARD = "guard"
    SYSTEM = "system"


SEVERITY_RANK = {
    EventSeverity.CRITICAL: 0,
    EventSeverity.HIGH: 1,
    EventSeverity.MEDIUM: 2,
    EventSeverity.LOW: 3,
}


class GeoPoint(BaseModel):
    lat: float
    lng: float


class ZonedLocation(GeoPoint):
    zone: str


class CameraLocation(ZonedLocation):
    description: str = ""


class Handler(BaseModel):
    name: str
    contact: str = ""


class HealthMetrics(BaseModel):
    """Advisory vitals recorded at the last checkup."""

    heart_rate: float
    temperature: float
    last_checkup: datetime


class PatrolUnit(BaseModel):
    """A guard dog and its handler."""

    id: str
    name: str
    breed: str
    age: int = Field(ge=0)
    status: PatrolUnitStatus
    location: ZonedLocation
    handler: Handler
    health_metrics: HealthMetrics
    last_patrol: datetime
    is_on_duty: bool = False


class Personnel(BaseModel):
    """A human security guard."""

    id: str
    name: str
    employee_id: str
    assigned_zone: str
    status: PersonnelStatus
    current_activity: str = ""
    shift_start: datetime
    shift_end: datetime
    location: GeoPoint
    contact: str = ""
    certifications: List[str] = Field(default_factory=list)


class CameraFeatures(BaseModel):
    motion_detection: bool = False
    face_recognition: bool = False
    intrusion_detection: bool = False


class Camera(BaseModel):
    """A CCTV camera as last reported by its ping."""

    id: str
    camera_id: str
    name: str
    location: CameraLocation
    status: CameraStatus
    is_recording: bool = False
    last_ping: datetime
    ai_features: CameraFeatures = Field(default_factory=CameraFeatures)
    resolution: str = ""
    night_vision: bool = False


class EventMetadata(BaseModel):
    image_url: Optional[str] = None
    confidence: Optional[float] = Field(default=None, ge=0, le=1)
    additional_info: Optional[str] = None


class SecurityEvent(BaseModel):
    """An entry in the security event log.

    ``source_id`` is a loose key: it may name a patrol unit, a guard or a
    camera by id, code or name, or nothing that exists at all.
    """

    id: str
    type: EventType
    severity: EventSeverity
    description: str
    location: ZonedLocation
    source_id: str
    source_type: EventSourceType
    is_resolved: bool = False
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    metadata: Optional[EventMetadata] = None
    occurred_at: datetime = Field(default_factory=_utcnow)
