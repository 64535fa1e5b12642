from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus
from ..sessions.model import DeviceInfo, ScanLocation


@dataclass(frozen=True)
class AcceptedScan:
    """An accepted scan, everything needed to write the day's record.

    Carried by RecordingIncomplete so recording can be retried on its own.
    """

    student_id: int
    subject_id: int
    teacher_id: int
    accepted_at: datetime
    session_start: datetime
    session_end: Optional[datetime]
    source_session_id: int
    location: Optional[ScanLocation] = None
    device_info: Optional[DeviceInfo] = None

    @property
    def calendar_day(self) -> date:
        return self.accepted_at.date()


@dataclass(frozen=True)
class AttendanceRecord:
    """Day-level attendance of one student in one subject."""

    attendance_id: int
    student_id: int
    subject_id: int
    attendance_date: date
    status: AttendanceStatus
    marked_at: datetime
    teacher_id: Optional[int] = None
    source_session_id: Optional[int] = None
    class_start: Optional[datetime] = None
    class_end: Optional[datetime] = None
    location: Optional[ScanLocation] = None
    device_info: Optional[DeviceInfo] = None
    remarks: Optional[str] = None

    @property
    def is_late(self) -> bool:
        return self.status == AttendanceStatus.LATE
