from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .strategies.base import AttendanceStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.present_strategy import PresentStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules.

    Lateness compares the acceptance time with the class start only; the
    session expiry decides whether a scan is accepted, never the status.
    """

    def for_scan(self, *, accepted_at: datetime, session_start: datetime) -> AttendanceStrategy:
        if accepted_at > session_start:
            return LateStrategy()
        return PresentStrategy()
