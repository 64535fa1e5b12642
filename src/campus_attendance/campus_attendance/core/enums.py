from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Role supplied by the auth layer for each request."""

    ADMIN = "Admin"
    TEACHER = "Teacher"
    STUDENT = "Student"


class AttendanceStatus(str, Enum):
    """Day-level attendance status stored per (student, subject, day)."""

    PRESENT = "Present"
    LATE = "Late"
    ABSENT = "Absent"
    EXCUSED = "Excused"


class ScanRejection(str, Enum):
    """Why a scan attempt was refused.

    Each member carries the message shown to the student.
    """

    SESSION_NOT_FOUND = "SessionNotFound"
    SESSION_EXPIRED = "SessionExpired"
    NOT_ENROLLED = "NotEnrolled"
    OUT_OF_RANGE = "OutOfRange"
    ALREADY_SCANNED = "AlreadyScanned"
    LIMIT_REACHED = "LimitReached"

    @property
    def message(self) -> str:
        return _REJECTION_MESSAGES[self]


_REJECTION_MESSAGES = {
    ScanRejection.SESSION_NOT_FOUND: "Invalid QR code",
    ScanRejection.SESSION_EXPIRED: "This QR code has expired",
    ScanRejection.NOT_ENROLLED: "You are not enrolled in this subject",
    ScanRejection.OUT_OF_RANGE: "You are outside the permitted radius for this class",
    ScanRejection.ALREADY_SCANNED: "You have already scanned this QR code",
    ScanRejection.LIMIT_REACHED: "Maximum scan limit reached for this QR code",
}


class AppendResult(str, Enum):
    """Outcome of the conditional scan append at the store."""

    APPENDED = "APPENDED"
    ALREADY_SCANNED = "ALREADY_SCANNED"
    LIMIT_REACHED = "LIMIT_REACHED"
    EXPIRED = "EXPIRED"
