from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional, Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from ..sessions.model import DeviceInfo, ScanLocation
from .model import AttendanceRecord
from .repository import AttendanceRepository

_RECORD_COLUMNS = """
    attendance_id, student_id, subject_id, teacher_id, attendance_date, status, marked_at,
    source_session_id, class_start, class_end, latitude, longitude, accuracy,
    user_agent, device_type, ip_address, remarks
"""


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_student_and_date(self, *, student_id: int, subject_id: int, attendance_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance_records
                WHERE student_id=%s AND subject_id=%s AND attendance_date=%s
                """,
                (int(student_id), int(subject_id), attendance_date),
            )
            r = fetchone(cur)
            return self._to_record(r) if r else None

    def get_recent_for_student(self, student_id: int, limit: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance_records
                WHERE student_id=%s
                ORDER BY attendance_date DESC, marked_at DESC
                LIMIT %s
                """,
                (int(student_id), int(limit)),
            )
            return [self._to_record(r) for r in fetchall(cur)]

    def list_for_subject_and_date(self, *, subject_id: int, attendance_date: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance_records
                WHERE subject_id=%s AND attendance_date=%s
                ORDER BY marked_at ASC
                """,
                (int(subject_id), attendance_date),
            )
            return [self._to_record(r) for r in fetchall(cur)]

    def upsert_for_day(
        self,
        *,
        student_id: int,
        subject_id: int,
        attendance_date: date,
        status: AttendanceStatus,
        marked_at: datetime,
        teacher_id: Optional[int],
        source_session_id: Optional[int],
        class_start: Optional[datetime],
        class_end: Optional[datetime],
        location: Optional[ScanLocation] = None,
        device_info: Optional[DeviceInfo] = None,
        remarks: Optional[str] = None,
    ) -> AttendanceRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(
                    student_id, subject_id, teacher_id, attendance_date, status, marked_at,
                    source_session_id, class_start, class_end, latitude, longitude, accuracy,
                    user_agent, device_type, ip_address, remarks
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    status=VALUES(status),
                    marked_at=VALUES(marked_at),
                    teacher_id=VALUES(teacher_id),
                    source_session_id=VALUES(source_session_id),
                    class_start=VALUES(class_start),
                    class_end=VALUES(class_end),
                    latitude=VALUES(latitude),
                    longitude=VALUES(longitude),
                    accuracy=VALUES(accuracy),
                    user_agent=VALUES(user_agent),
                    device_type=VALUES(device_type),
                    ip_address=VALUES(ip_address),
                    remarks=VALUES(remarks)
                """,
                (
                    int(student_id),
                    int(subject_id),
                    teacher_id,
                    attendance_date,
                    status.value,
                    marked_at,
                    source_session_id,
                    class_start,
                    class_end,
                    location.latitude if location else None,
                    location.longitude if location else None,
                    location.accuracy if location else None,
                    device_info.user_agent if device_info else None,
                    device_info.device_type if device_info else None,
                    device_info.ip_address if device_info else None,
                    remarks,
                ),
            )

            # Read back inside the same transaction so the caller sees this write.
            cur.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM attendance_records
                WHERE student_id=%s AND subject_id=%s AND attendance_date=%s
                """,
                (int(student_id), int(subject_id), attendance_date),
            )
            return self._to_record(fetchone(cur))

    @staticmethod
    def _to_record(r: Dict[str, Any]) -> AttendanceRecord:
        location = None
        if r.get("latitude") is not None and r.get("longitude") is not None:
            location = ScanLocation(
                latitude=float(r["latitude"]),
                longitude=float(r["longitude"]),
                accuracy=float(r["accuracy"]) if r.get("accuracy") is not None else None,
            )
        device = None
        if r.get("user_agent") or r.get("device_type") or r.get("ip_address"):
            device = DeviceInfo(
                user_agent=r.get("user_agent"),
                device_type=r.get("device_type"),
                ip_address=r.get("ip_address"),
            )
        return AttendanceRecord(
            attendance_id=int(r["attendance_id"]),
            student_id=int(r["student_id"]),
            subject_id=int(r["subject_id"]),
            attendance_date=r["attendance_date"],
            status=AttendanceStatus(r["status"]),
            marked_at=r["marked_at"],
            teacher_id=int(r["teacher_id"]) if r.get("teacher_id") is not None else None,
            source_session_id=int(r["source_session_id"]) if r.get("source_session_id") is not None else None,
            class_start=r.get("class_start"),
            class_end=r.get("class_end"),
            location=location,
            device_info=device,
            remarks=r.get("remarks"),
        )
