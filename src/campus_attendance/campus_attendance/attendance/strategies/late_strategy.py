from __future__ import annotations

from datetime import datetime

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class LateStrategy(AttendanceStrategy):
    """Checked in after the class started."""

    def decide(self, *, accepted_at: datetime, session_start: datetime) -> StatusDecision:
        minutes = int((accepted_at - session_start).total_seconds() // 60)
        return StatusDecision(status=AttendanceStatus.LATE, note=f"Late by {minutes} min")
