from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..core.constants import (
    CODE_BYTES,
    DEFAULT_EXPIRY_MINUTES,
    MAX_CODE_ATTEMPTS,
    MAX_EXPIRY_MINUTES,
    MAX_RADIUS_METERS,
    MIN_RADIUS_METERS,
    TOKEN_BYTES,
)
from ..core.exceptions import IssuanceFailed, SubjectNotFound, ValidationError
from ..geofence.model import Geofence
from ..subjects.repository import SubjectRepository
from .model import ClassWindow, NewSession, QRSession
from .repository import DuplicateCodeError, QRSessionRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssueRequest:
    subject_id: int
    teacher_id: int
    class_window: ClassWindow
    geofence: Optional[Geofence]
    expiry_minutes: int = DEFAULT_EXPIRY_MINUTES
    max_scans: Optional[int] = None


def generate_code() -> str:
    return secrets.token_hex(CODE_BYTES).upper()


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


class SessionIssuer:
    """Creates QR sessions.

    The caller has already checked that the teacher may issue for the
    subject; the issuer only validates the request shape and persists.
    """

    def __init__(
        self,
        sessions: QRSessionRepository,
        subjects: SubjectRepository,
        *,
        code_factory: Callable[[], str] = generate_code,
        token_factory: Callable[[], str] = generate_token,
        max_attempts: int = MAX_CODE_ATTEMPTS,
    ):
        self._sessions = sessions
        self._subjects = subjects
        self._code_factory = code_factory
        self._token_factory = token_factory
        self._max_attempts = int(max_attempts)

    def issue(self, request: IssueRequest, *, now: Optional[datetime] = None) -> QRSession:
        now = now or now_local()
        self._validate(request)

        subject = self._subjects.get_by_id(request.subject_id)
        if not subject:
            raise SubjectNotFound(f"Subject {request.subject_id} not found")

        expires_at = now + timedelta(minutes=int(request.expiry_minutes))

        for attempt in range(1, self._max_attempts + 1):
            code = self._code_factory()
            if self._sessions.code_exists(code):
                logger.warning("QR code collision on attempt %d, regenerating", attempt)
                continue

            new_session = NewSession(
                code=code,
                token=self._token_factory(),
                subject_id=int(request.subject_id),
                teacher_id=int(request.teacher_id),
                class_window=request.class_window,
                geofence=request.geofence,
                expires_at=expires_at,
                created_at=now,
                max_scans=request.max_scans,
                description=f"Attendance QR for {subject.name}",
            )
            try:
                session = self._sessions.create(new_session)
            except DuplicateCodeError:
                logger.warning("QR code/token taken at insert on attempt %d, regenerating", attempt)
                continue

            logger.info(
                "Issued QR session %s (code %s...) for subject %s, expires %s",
                session.session_id,
                code[:6],
                session.subject_id,
                session.expires_at.isoformat(),
            )
            return session

        logger.error("Gave up issuing a QR session after %d attempts", self._max_attempts)
        raise IssuanceFailed("Could not generate a unique QR code")

    @staticmethod
    def _validate(request: IssueRequest) -> None:
        window = request.class_window
        if window.end <= window.start:
            raise ValidationError("Class end time must be after the start time")

        if not (1 <= int(request.expiry_minutes) <= MAX_EXPIRY_MINUTES):
            raise ValidationError(f"expiryMinutes must be between 1 and {MAX_EXPIRY_MINUTES}")

        if request.max_scans is not None and int(request.max_scans) < 1:
            raise ValidationError("maxScans must be at least 1")

        fence = request.geofence
        if fence is not None and fence.enforced:
            if not (MIN_RADIUS_METERS <= fence.radius_meters <= MAX_RADIUS_METERS):
                raise ValidationError(
                    f"Radius must be between {MIN_RADIUS_METERS} and {MAX_RADIUS_METERS} meters"
                )
