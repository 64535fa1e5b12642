from __future__ import annotations

import logging

from ..core.constants import UPSERT_RETRY_LIMIT
from ..core.exceptions import PersistenceConflict
from ..database.mysql_base import StoreConflict
from .factory import AttendanceStrategyFactory
from .model import AcceptedScan, AttendanceRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class AttendanceRecorder:
    """Turns an accepted scan into the day's attendance record.

    One record per (student, subject, calendar day); a later scan on the same
    day overwrites the earlier status.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        *,
        strategy_factory: AttendanceStrategyFactory | None = None,
        retry_limit: int = UPSERT_RETRY_LIMIT,
    ):
        self._attendance = attendance
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._retry_limit = max(1, int(retry_limit))

    def record(self, accepted: AcceptedScan) -> AttendanceRecord:
        strategy = self._factory.for_scan(accepted_at=accepted.accepted_at, session_start=accepted.session_start)
        decision = strategy.decide(accepted_at=accepted.accepted_at, session_start=accepted.session_start)

        last_error: StoreConflict | None = None
        for attempt in range(1, self._retry_limit + 1):
            try:
                record = self._attendance.upsert_for_day(
                    student_id=accepted.student_id,
                    subject_id=accepted.subject_id,
                    attendance_date=accepted.calendar_day,
                    status=decision.status,
                    marked_at=accepted.accepted_at,
                    teacher_id=accepted.teacher_id,
                    source_session_id=accepted.source_session_id,
                    class_start=accepted.session_start,
                    class_end=accepted.session_end,
                    location=accepted.location,
                    device_info=accepted.device_info,
                    remarks=decision.note,
                )
            except StoreConflict as exc:
                last_error = exc
                logger.warning(
                    "Attendance upsert for student %s subject %s conflicted (attempt %d/%d)",
                    accepted.student_id,
                    accepted.subject_id,
                    attempt,
                    self._retry_limit,
                )
                continue

            logger.info(
                "Recorded %s for student %s subject %s on %s",
                record.status.value,
                record.student_id,
                record.subject_id,
                record.attendance_date.isoformat(),
            )
            return record

        raise PersistenceConflict(
            f"Attendance for student {accepted.student_id} could not be saved after {self._retry_limit} attempts"
        ) from last_error
