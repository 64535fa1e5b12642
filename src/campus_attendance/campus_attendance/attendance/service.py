from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Sequence

from ..common.validators import require_int, require_non_empty
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import AttendanceStatus
from ..core.exceptions import RecordingIncomplete, SessionNotFound, ValidationError, rejection_error
from ..notifications.model import AttendanceNotification
from ..notifications.notifier import Notifier
from ..sessions.model import QRSession, ScanEntry
from ..sessions.repository import QRSessionRepository
from ..sessions.validator import ScanRequest, ScanValidator
from ..subjects.repository import SubjectRepository
from .model import AcceptedScan, AttendanceRecord
from .recorder import AttendanceRecorder
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanResult:
    status: AttendanceStatus
    marked_at: datetime
    is_late: bool
    record: AttendanceRecord


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        subjects: SubjectRepository,
        sessions: QRSessionRepository,
        validator: ScanValidator,
        recorder: AttendanceRecorder,
        notifier: Optional[Notifier] = None,
    ):
        self._attendance = attendance
        self._subjects = subjects
        self._sessions = sessions
        self._validator = validator
        self._recorder = recorder
        self._notifier = notifier

    def submit_scan(self, request: ScanRequest, *, collect_all: bool = False) -> ScanResult:
        """Validate a scan and record the day's attendance.

        Raises a ``ScanRejected`` subclass when validation fails. When the scan
        was accepted but recording failed, raises ``RecordingIncomplete``; the
        scan is already consumed and only the recording should be retried, with
        ``resume_recording`` (or ``record_accepted`` in-process).
        """

        decision = self._validator.validate(request, collect_all=collect_all)
        if not decision.accepted:
            raise rejection_error(decision.reasons)

        accepted = self._accepted_scan(
            decision.session,
            ScanEntry(
                student_id=int(request.student_id),
                scanned_at=decision.accepted_at,
                location=request.location,
                device_info=request.device_info,
            ),
        )

        try:
            record = self._recorder.record(accepted)
        except Exception as exc:
            logger.exception(
                "Scan by student %s on session %s accepted but not recorded",
                accepted.student_id,
                accepted.source_session_id,
            )
            raise RecordingIncomplete(accepted, cause=exc) from exc

        self._notify(record)
        return ScanResult(status=record.status, marked_at=record.marked_at, is_late=record.is_late, record=record)

    def record_accepted(self, accepted: AcceptedScan) -> AttendanceRecord:
        record = self._recorder.record(accepted)
        self._notify(record)
        return record

    def resume_recording(self, *, code: str, token: str, student_id: int) -> ScanResult:
        """Finish recording a scan that was accepted earlier.

        Used after ``RecordingIncomplete``: the stored scan entry is the source
        of truth, so the student does not scan again. Idempotent once the day's
        record covers the scan.
        """

        code = require_non_empty(code, "code")
        token = require_non_empty(token, "token")
        student_id = require_int(student_id, "studentId", min_value=1)

        session = self._sessions.get_by_code_and_token(code, token)
        if not session:
            raise SessionNotFound()
        entry = next((s for s in session.scans if s.student_id == student_id), None)
        if entry is None:
            raise ValidationError("There is no accepted scan to record for this QR code")

        existing = self._attendance.get_for_student_and_date(
            student_id=student_id,
            subject_id=session.subject_id,
            attendance_date=entry.scanned_at.date(),
        )
        if existing is not None and existing.marked_at >= entry.scanned_at:
            return ScanResult(status=existing.status, marked_at=existing.marked_at, is_late=existing.is_late, record=existing)

        logger.info("Resuming attendance recording for student %s on session %s", student_id, session.session_id)
        record = self.record_accepted(self._accepted_scan(session, entry))
        return ScanResult(status=record.status, marked_at=record.marked_at, is_late=record.is_late, record=record)

    def history_for_student(self, student_id: int, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[AttendanceRecord]:
        student_id = require_int(student_id, "studentId", min_value=1)
        limit = require_int(limit, "limit", min_value=1, max_value=500)
        return self._attendance.get_recent_for_student(student_id, limit)

    def records_for_subject(self, subject_id: int, day: date) -> Sequence[AttendanceRecord]:
        subject_id = require_int(subject_id, "subjectId", min_value=1)
        return self._attendance.list_for_subject_and_date(subject_id=subject_id, attendance_date=day)

    @staticmethod
    def _accepted_scan(session: QRSession, entry: ScanEntry) -> AcceptedScan:
        return AcceptedScan(
            student_id=entry.student_id,
            subject_id=session.subject_id,
            teacher_id=session.teacher_id,
            accepted_at=entry.scanned_at,
            session_start=session.class_window.start,
            session_end=session.class_window.end,
            source_session_id=session.session_id,
            location=entry.location,
            device_info=entry.device_info,
        )

    def _notify(self, record: AttendanceRecord) -> None:
        if self._notifier is None:
            return
        try:
            subject = self._subjects.get_by_id(record.subject_id)
            notification = AttendanceNotification.for_record(
                student_id=record.student_id,
                subject_name=subject.name if subject else f"subject {record.subject_id}",
                status=record.status,
                timestamp=record.marked_at,
            )
            self._notifier.notify(notification)
        except Exception:
            # Delivery problems never undo a recorded attendance.
            logger.exception("Failed to notify student %s", record.student_id)
