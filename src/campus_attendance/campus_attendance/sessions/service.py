from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional, Sequence

from ..common.datetime_utils import now_local, parse_iso_datetime
from ..common.validators import require_float, require_int, require_mapping
from ..core.constants import DEFAULT_EXPIRY_MINUTES, DEFAULT_RADIUS_METERS, MAX_EXPIRY_MINUTES
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, SessionNotFound, SubjectNotFound, ValidationError
from ..geofence.model import Coordinates, Geofence
from ..subjects.repository import SubjectRepository
from .issuer import IssueRequest, SessionIssuer
from .model import ClassWindow, QRSession
from .rendering import render_session_png
from .repository import QRSessionRepository

logger = logging.getLogger(__name__)

_ISSUING_ROLES = {Role.TEACHER, Role.ADMIN}


class QRSessionService:
    """Teacher-facing operations on QR sessions."""

    def __init__(
        self,
        sessions: QRSessionRepository,
        subjects: SubjectRepository,
        issuer: SessionIssuer,
        *,
        default_expiry_minutes: int = DEFAULT_EXPIRY_MINUTES,
        default_radius_meters: float = DEFAULT_RADIUS_METERS,
    ):
        self._sessions = sessions
        self._subjects = subjects
        self._issuer = issuer
        self._default_expiry_minutes = int(default_expiry_minutes)
        self._default_radius_meters = float(default_radius_meters)

    def generate(
        self,
        *,
        role: Role,
        teacher_id: int,
        subject_id: Any,
        class_start: Any,
        class_end: Any,
        location: Any = None,
        expiry_minutes: Any = None,
        max_scans: Any = None,
        now: Optional[datetime] = None,
    ) -> QRSession:
        self._require_issuer_role(role)
        subject_id = require_int(subject_id, "subjectId", min_value=1)

        subject = self._subjects.get_by_id(subject_id)
        if not subject:
            raise SubjectNotFound(f"Subject {subject_id} not found")
        if role != Role.ADMIN and subject.teacher_id != int(teacher_id):
            raise AuthorizationError("You can only generate QR codes for your own subjects")

        request = IssueRequest(
            subject_id=subject_id,
            teacher_id=int(teacher_id),
            class_window=ClassWindow(
                start=self._as_datetime(class_start, "classStartTime"),
                end=self._as_datetime(class_end, "classEndTime"),
            ),
            geofence=self._parse_geofence(location),
            expiry_minutes=(
                self._default_expiry_minutes
                if expiry_minutes is None
                else require_int(expiry_minutes, "expiryMinutes", min_value=1, max_value=MAX_EXPIRY_MINUTES)
            ),
            max_scans=None if max_scans is None else require_int(max_scans, "maxScans", min_value=1),
        )
        return self._issuer.issue(request, now=now)

    def list_active(self, *, role: Role, teacher_id: int, now: Optional[datetime] = None) -> Sequence[QRSession]:
        self._require_issuer_role(role)
        return self._sessions.list_active_for_teacher(int(teacher_id), now=now or now_local())

    def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """Mark expired sessions inactive. Validation never depends on this."""

        count = self._sessions.deactivate_expired(now=now or now_local())
        if count:
            logger.info("Deactivated %d expired QR session(s)", count)
        return count

    def render_image(self, code: str, *, role: Role, teacher_id: int) -> bytes:
        self._require_issuer_role(role)
        session = self._sessions.get_by_code(code)
        if not session:
            raise SessionNotFound()
        if role != Role.ADMIN and session.teacher_id != int(teacher_id):
            raise AuthorizationError("You can only view QR codes you generated")
        return render_session_png(session)

    @staticmethod
    def _require_issuer_role(role: Role) -> None:
        if role not in _ISSUING_ROLES:
            raise AuthorizationError("Only teachers and admins can manage QR sessions")

    @staticmethod
    def _as_datetime(value: Any, field_name: str) -> datetime:
        if isinstance(value, datetime):
            return value
        return parse_iso_datetime(value, field_name)

    def _parse_geofence(self, value: Any) -> Optional[Geofence]:
        location = require_mapping(value, "location")
        if not location:
            return None
        center = Coordinates.parse(location.get("latitude"), location.get("longitude"))
        radius = location.get("radius")
        radius_meters = self._default_radius_meters if radius is None else require_float(radius, "radius", min_value=0.0)
        address = location.get("address")
        if address is not None and not isinstance(address, str):
            raise ValidationError("address must be a string")
        return Geofence(
            latitude=center.latitude,
            longitude=center.longitude,
            radius_meters=radius_meters,
            address=address,
        )
