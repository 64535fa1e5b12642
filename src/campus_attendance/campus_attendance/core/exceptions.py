from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence

from .enums import ScanRejection

if TYPE_CHECKING:
    from ..attendance.model import AcceptedScan


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


InvalidInput = ValidationError


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class SubjectNotFound(DomainError):
    """Raised when a referenced subject does not exist."""


class IssuanceFailed(DomainError):
    """Raised when no unique session code could be generated."""


class ScanRejected(DomainError):
    """A scan attempt failed validation.

    ``reasons`` holds the first failing check, or every violated check when
    the caller asked for a full diagnostic.
    """

    default_reason: Optional[ScanRejection] = None

    def __init__(self, reasons: Optional[Sequence[ScanRejection]] = None):
        if not reasons:
            reasons = (self.default_reason,) if self.default_reason else ()
        self.reasons = tuple(reasons)
        super().__init__(", ".join(r.message for r in self.reasons))

    @property
    def reason(self) -> Optional[ScanRejection]:
        return self.reasons[0] if self.reasons else None


class SessionNotFound(ScanRejected):
    default_reason = ScanRejection.SESSION_NOT_FOUND


class SessionExpired(ScanRejected):
    default_reason = ScanRejection.SESSION_EXPIRED


class NotEnrolled(ScanRejected):
    default_reason = ScanRejection.NOT_ENROLLED


class OutOfRange(ScanRejected):
    default_reason = ScanRejection.OUT_OF_RANGE


class AlreadyScanned(ScanRejected):
    default_reason = ScanRejection.ALREADY_SCANNED


class LimitReached(ScanRejected):
    default_reason = ScanRejection.LIMIT_REACHED


_REJECTION_ERRORS = {
    cls.default_reason: cls
    for cls in (SessionNotFound, SessionExpired, NotEnrolled, OutOfRange, AlreadyScanned, LimitReached)
}


def rejection_error(reasons: Sequence[ScanRejection]) -> ScanRejected:
    """Build the exception matching the first (deciding) rejection reason."""

    cls = _REJECTION_ERRORS.get(reasons[0], ScanRejected) if reasons else ScanRejected
    return cls(reasons)


class PersistenceConflict(DomainError):
    """Raised when a store write kept conflicting past the retry budget."""


class RecordingIncomplete(DomainError):
    """The scan was accepted but the attendance record was not written.

    Retry with ``AttendanceService.record_accepted(err.accepted)``; never
    resubmit the scan itself.
    """

    def __init__(self, accepted: "AcceptedScan", cause: Optional[Exception] = None):
        self.accepted = accepted
        self.cause = cause
        super().__init__("Scan accepted but attendance could not be recorded")
