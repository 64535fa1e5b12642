from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

from ..geofence.model import Coordinates, Geofence


@dataclass(frozen=True)
class ClassWindow:
    start: datetime
    end: datetime


@dataclass(frozen=True)
class ScanLocation:
    """Location reported by the student's device."""

    latitude: float
    longitude: float
    accuracy: Optional[float] = None

    @property
    def point(self) -> Coordinates:
        return Coordinates(self.latitude, self.longitude)


@dataclass(frozen=True)
class DeviceInfo:
    user_agent: Optional[str] = None
    device_type: Optional[str] = None
    ip_address: Optional[str] = None


@dataclass(frozen=True)
class ScanEntry:
    student_id: int
    scanned_at: datetime
    location: Optional[ScanLocation] = None
    device_info: Optional[DeviceInfo] = None


@dataclass(frozen=True)
class QRSession:
    """A short-lived, location-bound attendance credential for one class.

    Sessions are values: the store hands out fresh copies and only the
    conditional scan append mutates the persisted state.
    """

    session_id: int
    code: str
    token: str
    subject_id: int
    teacher_id: int
    class_window: ClassWindow
    geofence: Optional[Geofence]
    expires_at: datetime
    created_at: datetime
    max_scans: Optional[int] = None
    scan_count: int = 0
    scans: Tuple[ScanEntry, ...] = field(default_factory=tuple)
    active: bool = True
    description: Optional[str] = None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def limit_reached(self) -> bool:
        return self.max_scans is not None and self.scan_count >= self.max_scans

    def is_valid(self, now: datetime) -> bool:
        return self.active and not self.is_expired(now) and not self.limit_reached()

    def remaining_seconds(self, now: datetime) -> int:
        if self.is_expired(now):
            return 0
        return int((self.expires_at - now).total_seconds())

    def has_scanned(self, student_id: int) -> bool:
        return any(s.student_id == student_id for s in self.scans)


@dataclass(frozen=True)
class NewSession:
    """Everything the issuer decided, before the store assigns an id."""

    code: str
    token: str
    subject_id: int
    teacher_id: int
    class_window: ClassWindow
    geofence: Optional[Geofence]
    expires_at: datetime
    created_at: datetime
    max_scans: Optional[int] = None
    description: Optional[str] = None
