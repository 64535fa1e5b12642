from __future__ import annotations

from typing import Protocol

from .model import AttendanceNotification


class Notifier(Protocol):
    def notify(self, notification: AttendanceNotification) -> None:
        raise NotImplementedError
