from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from ..sessions.model import DeviceInfo, ScanLocation
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_for_student_and_date(self, *, student_id: int, subject_id: int, attendance_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_recent_for_student(self, student_id: int, limit: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_subject_and_date(self, *, subject_id: int, attendance_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def upsert_for_day(
        self,
        *,
        student_id: int,
        subject_id: int,
        attendance_date: date,
        status: AttendanceStatus,
        marked_at: datetime,
        teacher_id: Optional[int],
        source_session_id: Optional[int],
        class_start: Optional[datetime],
        class_end: Optional[datetime],
        location: Optional[ScanLocation] = None,
        device_info: Optional[DeviceInfo] = None,
        remarks: Optional[str] = None,
    ) -> AttendanceRecord:
        """Create or overwrite the record keyed by (student, subject, date).

        Must be a single atomic step: concurrent calls for one key converge
        on one row. May raise StoreConflict on transient contention.
        """

        raise NotImplementedError
