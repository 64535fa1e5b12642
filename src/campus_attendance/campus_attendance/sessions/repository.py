from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AppendResult
from .model import NewSession, QRSession, ScanEntry


class DuplicateCodeError(Exception):
    """The store already holds a session with this code or token."""


class QRSessionRepository(Protocol):
    def code_exists(self, code: str) -> bool:
        raise NotImplementedError

    def create(self, new_session: NewSession) -> QRSession:
        """Persist a fresh session (active, no scans).

        Raises DuplicateCodeError when ``code`` or ``token`` is taken.
        """

        raise NotImplementedError

    def get_by_code_and_token(self, code: str, token: str) -> Optional[QRSession]:
        raise NotImplementedError

    def get_by_code(self, code: str) -> Optional[QRSession]:
        raise NotImplementedError

    def append_scan_if_allowed(self, *, session_id: int, entry: ScanEntry, now: datetime) -> AppendResult:
        """Atomically record one scan.

        Succeeds only if, at write time, the session is active, ``now`` is
        before ``expires_at``, the student has no scan yet and the cap (if
        any) is not reached. On success the scan is appended, ``scan_count``
        incremented and ``active`` cleared when the cap is hit, all in one
        step.
        """

        raise NotImplementedError

    def list_active_for_teacher(self, teacher_id: int, *, now: datetime) -> Sequence[QRSession]:
        raise NotImplementedError

    def deactivate_expired(self, *, now: datetime) -> int:
        """Flip ``active`` off for every expired session; returns the count."""

        raise NotImplementedError
