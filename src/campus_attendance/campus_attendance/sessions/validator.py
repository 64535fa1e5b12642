from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from ..common.datetime_utils import now_local
from ..common.validators import require_int, require_non_empty
from ..core.enums import AppendResult, ScanRejection
from ..core.exceptions import PersistenceConflict
from ..database.mysql_base import StoreConflict
from ..subjects.repository import SubjectRepository
from .model import DeviceInfo, QRSession, ScanEntry, ScanLocation
from .repository import QRSessionRepository

logger = logging.getLogger(__name__)

_APPEND_REJECTIONS = {
    AppendResult.ALREADY_SCANNED: ScanRejection.ALREADY_SCANNED,
    AppendResult.LIMIT_REACHED: ScanRejection.LIMIT_REACHED,
    AppendResult.EXPIRED: ScanRejection.SESSION_EXPIRED,
}


@dataclass(frozen=True)
class ScanRequest:
    code: str
    token: str
    student_id: int
    location: Optional[ScanLocation] = None
    device_info: Optional[DeviceInfo] = None


@dataclass(frozen=True)
class ScanDecision:
    """Result of validating one scan attempt.

    Rejections are ordinary outcomes, not errors: ``reasons`` lists the
    failing check (or all of them in diagnostic mode).
    """

    accepted: bool
    reasons: Tuple[ScanRejection, ...] = field(default_factory=tuple)
    session: Optional[QRSession] = None
    accepted_at: Optional[datetime] = None

    @property
    def session_start(self) -> Optional[datetime]:
        return self.session.class_window.start if self.session else None

    @classmethod
    def rejected(cls, reasons: List[ScanRejection], session: Optional[QRSession] = None) -> "ScanDecision":
        return cls(accepted=False, reasons=tuple(reasons), session=session)


class ScanValidator:
    """Sequential, fail-fast authorization of a scan against its session.

    Checks run in a fixed order and the first failure decides the outcome.
    With ``collect_all=True`` every check runs and all violations are
    reported; nothing is written in that case unless all pass.
    """

    def __init__(
        self,
        sessions: QRSessionRepository,
        subjects: SubjectRepository,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._sessions = sessions
        self._subjects = subjects
        self._clock = clock

    def validate(self, request: ScanRequest, *, collect_all: bool = False) -> ScanDecision:
        code = require_non_empty(request.code, "code")
        token = require_non_empty(request.token, "token")
        student_id = require_int(request.student_id, "studentId", min_value=1)

        session = self._sessions.get_by_code_and_token(code, token)
        if not session:
            logger.info("Scan by student %s rejected: no session for code %s...", student_id, code[:6])
            return ScanDecision.rejected([ScanRejection.SESSION_NOT_FOUND])

        reasons = self._check(session, request, student_id, now=self._clock(), collect_all=collect_all)
        if reasons:
            logger.info(
                "Scan by student %s on session %s rejected: %s",
                student_id,
                session.session_id,
                ", ".join(r.value for r in reasons),
            )
            return ScanDecision.rejected(reasons, session)

        # Re-read the clock so a request straddling expiry is judged at write time.
        write_now = self._clock()
        entry = ScanEntry(
            student_id=student_id,
            scanned_at=write_now,
            location=request.location,
            device_info=request.device_info,
        )
        try:
            result = self._sessions.append_scan_if_allowed(session_id=session.session_id, entry=entry, now=write_now)
        except StoreConflict as exc:
            logger.warning("Scan append on session %s hit a lock conflict: %s", session.session_id, exc)
            raise PersistenceConflict("The QR session is busy, please scan again") from exc
        if result != AppendResult.APPENDED:
            reason = _APPEND_REJECTIONS[result]
            logger.info(
                "Scan by student %s on session %s lost at write time: %s",
                student_id,
                session.session_id,
                reason.value,
            )
            return ScanDecision.rejected([reason], session)

        logger.info("Scan by student %s accepted on session %s", student_id, session.session_id)
        return ScanDecision(accepted=True, session=session, accepted_at=write_now)

    def _check(
        self,
        session: QRSession,
        request: ScanRequest,
        student_id: int,
        *,
        now: datetime,
        collect_all: bool,
    ) -> List[ScanRejection]:
        reasons: List[ScanRejection] = []

        def failed(reason: ScanRejection) -> bool:
            reasons.append(reason)
            return not collect_all

        # A session closed only by its cap is reported as LimitReached below.
        closed = not session.active and not session.limit_reached()
        if (session.is_expired(now) or closed) and failed(ScanRejection.SESSION_EXPIRED):
            return reasons

        if not self._subjects.is_enrolled(subject_id=session.subject_id, student_id=student_id):
            if failed(ScanRejection.NOT_ENROLLED):
                return reasons

        fence = session.geofence
        if fence is not None and fence.enforced and request.location is not None:
            if not fence.contains(request.location.point) and failed(ScanRejection.OUT_OF_RANGE):
                return reasons

        if session.has_scanned(student_id) and failed(ScanRejection.ALREADY_SCANNED):
            return reasons

        if session.limit_reached():
            failed(ScanRejection.LIMIT_REACHED)

        return reasons
