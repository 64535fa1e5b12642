from __future__ import annotations

import json

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor
from .model import AttendanceNotification
from .notifier import Notifier


class MySQLNotifier(Notifier):
    """Stores an in-app notification row for the student."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def notify(self, notification: AttendanceNotification) -> None:
        payload = {
            "subjectName": notification.subject_name,
            "status": notification.status.value,
            "timestamp": notification.timestamp.isoformat(),
        }
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO notifications(
                    recipient_id, title, message, notification_type, category, priority,
                    related_entity_type, payload, is_read, created_at
                )
                VALUES(%s,%s,%s,'attendance','academic','medium','Attendance',%s,0,%s)
                """,
                (
                    int(notification.student_id),
                    notification.title,
                    notification.message,
                    json.dumps(payload),
                    notification.timestamp,
                ),
            )
