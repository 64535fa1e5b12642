from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceNotification:
    student_id: int
    subject_name: str
    status: AttendanceStatus
    timestamp: datetime
    title: str
    message: str

    @classmethod
    def for_record(cls, *, student_id: int, subject_name: str, status: AttendanceStatus, timestamp: datetime) -> "AttendanceNotification":
        return cls(
            student_id=student_id,
            subject_name=subject_name,
            status=status,
            timestamp=timestamp,
            title="Attendance Marked",
            message=f"Your attendance for {subject_name} has been marked as {status.value}",
        )
