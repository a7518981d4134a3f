"""Demonstration deployment used by the demo seed endpoint."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from guardpost.core.logging import logger
from guardpost.models.security import (
    Camera,
    CameraFeatures,
    CameraLocation,
    CameraStatus,
    EventMetadata,
    EventSeverity,
    EventSourceType,
    EventType,
    GeoPoint,
    Handler,
    HealthMetrics,
    PatrolUnit,
    PatrolUnitStatus,
    Personnel,
    PersonnelStatus,
    SecurityEvent,
    ZonedLocation,
)
from guardpost.services.entity_store import EntityStore, utc_now


def seed_demo_deployment(store: EntityStore, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Replace every record with the demo site: 3 dogs, 3 guards, 4 cameras, 3 events."""
    now = now or utc_now()

    dogs = [
        PatrolUnit(
            id="DOG-001",
            name="Rex",
            breed="German Shepherd",
            age=4,
            status=PatrolUnitStatus.ACTIVE,
            location=ZonedLocation(lat=40.7128, lng=-74.0060, zone="North Gate"),
            handler=Handler(name="John Smith", contact="+1-555-0101"),
            health_metrics=HealthMetrics(heart_rate=85, temperature=101.5, last_checkup=now - timedelta(days=7)),
            last_patrol=now - timedelta(hours=2),
            is_on_duty=True,
        ),
        PatrolUnit(
            id="DOG-002",
            name="Luna",
            breed="Belgian Malinois",
            age=3,
            status=PatrolUnitStatus.ACTIVE,
            location=ZonedLocation(lat=40.7589, lng=-73.9851, zone="East Wing"),
            handler=Handler(name="Sarah Johnson", contact="+1-555-0102"),
            health_metrics=HealthMetrics(heart_rate=90, temperature=101.8, last_checkup=now - timedelta(days=3)),
            last_patrol=now - timedelta(hours=1),
            is_on_duty=True,
        ),
        PatrolUnit(
            id="DOG-003",
            name="Max",
            breed="Rottweiler",
            age=5,
            status=PatrolUnitStatus.RESTING,
            location=ZonedLocation(lat=40.7505, lng=-73.9934, zone="South Entrance"),
            handler=Handler(name="Mike Wilson", contact="+1-555-0103"),
            health_metrics=HealthMetrics(heart_rate=75, temperature=101.2, last_checkup=now - timedelta(days=1)),
            last_patrol=now - timedelta(hours=4),
            is_on_duty=False,
        ),
    ]

    guards = [
        Personnel(
            id="GRD-001",
            name="Alex Rodriguez",
            employee_id="BG001",
            assigned_zone="Main Building",
            status=PersonnelStatus.ON_DUTY,
            current_activity="Perimeter patrol",
            shift_start=now - timedelta(hours=4),
            shift_end=now + timedelta(hours=4),
            location=GeoPoint(lat=40.7614, lng=-73.9776),
            contact="+1-555-0201",
            certifications=["Armed Security", "First Aid", "Crisis Management"],
        ),
        Personnel(
            id="GRD-002",
            name="Maria Garcia",
            employee_id="BG002",
            assigned_zone="Parking Lot",
            status=PersonnelStatus.ON_DUTY,
            current_activity="Vehicle inspection",
            shift_start=now - timedelta(hours=3),
            shift_end=now + timedelta(hours=5),
            location=GeoPoint(lat=40.7580, lng=-73.9855),
            contact="+1-555-0202",
            certifications=["Security Guard License", "Defensive Tactics"],
        ),
        Personnel(
            id="GRD-003",
            name="David Chen",
            employee_id="BG003",
            assigned_zone="Reception Area",
            status=PersonnelStatus.BREAK,
            current_activity="Break time",
            shift_start=now - timedelta(hours=2),
            shift_end=now + timedelta(hours=6),
            location=GeoPoint(lat=40.7505, lng=-73.9934),
            contact="+1-555-0203",
            certifications=["Customer Service", "Access Control"],
        ),
    ]

    cameras = [
        Camera(
            id="CCTV-001",
            camera_id="CAM001",
            name="Main Entrance Camera",
            location=CameraLocation(lat=40.7128, lng=-74.0060, zone="Main Entrance", description="Front door monitoring"),
            status=CameraStatus.ONLINE,
            is_recording=True,
            last_ping=now,
            ai_features=CameraFeatures(motion_detection=True, face_recognition=True, intrusion_detection=True),
            resolution="4K",
            night_vision=True,
        ),
        Camera(
            id="CCTV-002",
            camera_id="CAM002",
            name="Parking Lot Camera 1",
            location=CameraLocation(lat=40.7589, lng=-73.9851, zone="Parking Lot", description="North parking area"),
            status=CameraStatus.ONLINE,
            is_recording=True,
            last_ping=now - timedelta(seconds=30),
            ai_features=CameraFeatures(motion_detection=True, face_recognition=False, intrusion_detection=True),
            resolution="1080p",
            night_vision=True,
        ),
        Camera(
            id="CCTV-003",
            camera_id="CAM003",
            name="Hallway Camera A",
            location=CameraLocation(lat=40.7505, lng=-73.9934, zone="Interior", description="Main hallway"),
            status=CameraStatus.OFFLINE,
            is_recording=False,
            last_ping=now - timedelta(minutes=10),
            ai_features=CameraFeatures(motion_detection=True, face_recognition=True, intrusion_detection=False),
            resolution="1080p",
            night_vision=False,
        ),
        Camera(
            id="CCTV-004",
            camera_id="CAM004",
            name="Emergency Exit Camera",
            location=CameraLocation(lat=40.7614, lng=-73.9776, zone="Emergency Exit", description="Rear emergency exit"),
            status=CameraStatus.MAINTENANCE,
            is_recording=False,
            last_ping=now - timedelta(hours=2),
            ai_features=CameraFeatures(motion_detection=True, face_recognition=False, intrusion_detection=True),
            resolution="720p",
            night_vision=True,
        ),
    ]

    events = [
        SecurityEvent(
            id="EVT-001",
            type=EventType.MOTION_DETECTED,
            severity=EventSeverity.LOW,
            description="Motion detected in parking lot",
            location=ZonedLocation(lat=40.7589, lng=-73.9851, zone="Parking Lot"),
            source_id="CAM002",
            source_type=EventSourceType.CAMERA,
            is_resolved=True,
            resolved_by="Maria Garcia",
            resolved_at=now - timedelta(minutes=30),
            metadata=EventMetadata(confidence=0.82),
            occurred_at=now - timedelta(minutes=45),
        ),
        SecurityEvent(
            id="EVT-002",
            type=EventType.INTRUSION_ALERT,
            severity=EventSeverity.HIGH,
            description="Unauthorized access attempt at emergency exit",
            location=ZonedLocation(lat=40.7614, lng=-73.9776, zone="Emergency Exit"),
            source_id="CAM004",
            source_type=EventSourceType.CAMERA,
            is_resolved=False,
            occurred_at=now - timedelta(minutes=20),
        ),
        SecurityEvent(
            id="EVT-003",
            type=EventType.PATROL_COMPLETED,
            severity=EventSeverity.LOW,
            description="Rex completed north gate patrol",
            location=ZonedLocation(lat=40.7128, lng=-74.0060, zone="North Gate"),
            source_id="Rex",
            source_type=EventSourceType.DOG,
            is_resolved=True,
            resolved_by="System",
            resolved_at=now - timedelta(hours=2),
            occurred_at=now - timedelta(hours=2),
        ),
    ]

    store.reset()
    for dog in dogs:
        store.upsert_patrol_unit(dog)
    for guard in guards:
        store.upsert_personnel(guard)
    for camera in cameras:
        store.upsert_camera(camera)
    for event in events:
        store.add_event(event)

    result = {
        "success": True,
        "message": "Security data seeded successfully",
        "patrol_units": len(dogs),
        "personnel": len(guards),
        "cameras": len(cameras),
        "events": len(events),
    }
    logger.info("Demo deployment seeded", **{k: v for k, v in result.items() if isinstance(v, int) and k != "success"})
    return result
