from __future__ import annotations

from datetime import datetime

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class PresentStrategy(AttendanceStrategy):
    """Checked in at or before the class start."""

    def decide(self, *, accepted_at: datetime, session_start: datetime) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT)
