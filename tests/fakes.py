from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Optional

from src.campus_attendance.campus_attendance.attendance.model import AttendanceRecord
from src.campus_attendance.campus_attendance.core.enums import AppendResult
from src.campus_attendance.campus_attendance.database.mysql_base import StoreConflict
from src.campus_attendance.campus_attendance.geofence.model import Geofence
from src.campus_attendance.campus_attendance.sessions.model import NewSession, QRSession
from src.campus_attendance.campus_attendance.sessions.repository import DuplicateCodeError
from src.campus_attendance.campus_attendance.subjects.model import Subject

CAMPUS = Geofence(latitude=10.7769, longitude=106.7009, radius_meters=50, address="Hall A")
TEACHER_ID = 7
SUBJECT_ID = 3
STUDENT_ID = 101


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@dataclass
class InMemorySubjects:
    subjects: dict[int, Subject]

    def get_by_id(self, subject_id: int) -> Optional[Subject]:
        return self.subjects.get(subject_id)

    def is_enrolled(self, *, subject_id: int, student_id: int) -> bool:
        subject = self.subjects.get(subject_id)
        return bool(subject and subject.is_enrolled(student_id))


class InMemoryQRSessions:
    """Thread-safe stand-in for the session store.

    The lock plays the role of the row lock taken by the conditional UPDATE.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._by_id: dict[int, QRSession] = {}
        self._id = 0

    def code_exists(self, code: str) -> bool:
        return any(s.code == code for s in self._by_id.values())

    def create(self, new_session: NewSession) -> QRSession:
        with self._lock:
            if any(s.code == new_session.code or s.token == new_session.token for s in self._by_id.values()):
                raise DuplicateCodeError(new_session.code)
            self._id += 1
            session = QRSession(
                session_id=self._id,
                code=new_session.code,
                token=new_session.token,
                subject_id=new_session.subject_id,
                teacher_id=new_session.teacher_id,
                class_window=new_session.class_window,
                geofence=new_session.geofence,
                expires_at=new_session.expires_at,
                created_at=new_session.created_at,
                max_scans=new_session.max_scans,
                description=new_session.description,
            )
            self._by_id[session.session_id] = session
            return session

    def get_by_code_and_token(self, code: str, token: str) -> Optional[QRSession]:
        return next((s for s in self._by_id.values() if s.code == code and s.token == token), None)

    def get_by_code(self, code: str) -> Optional[QRSession]:
        return next((s for s in self._by_id.values() if s.code == code), None)

    def get(self, session_id: int) -> QRSession:
        return self._by_id[session_id]

    def append_scan_if_allowed(self, *, session_id: int, entry, now: datetime) -> AppendResult:
        with self._lock:
            s = self._by_id.get(session_id)
            if s is None or now >= s.expires_at:
                return AppendResult.EXPIRED
            if not s.active and not s.limit_reached():
                return AppendResult.EXPIRED
            if s.has_scanned(entry.student_id):
                return AppendResult.ALREADY_SCANNED
            if s.limit_reached():
                return AppendResult.LIMIT_REACHED
            count = s.scan_count + 1
            active = s.active and not (s.max_scans is not None and count >= s.max_scans)
            self._by_id[session_id] = replace(s, scans=s.scans + (entry,), scan_count=count, active=active)
            return AppendResult.APPENDED

    def list_active_for_teacher(self, teacher_id: int, *, now: datetime):
        return [s for s in self._by_id.values() if s.teacher_id == teacher_id and s.active and now < s.expires_at]

    def deactivate_expired(self, *, now: datetime) -> int:
        with self._lock:
            expired = [s for s in self._by_id.values() if s.active and now >= s.expires_at]
            for s in expired:
                self._by_id[s.session_id] = replace(s, active=False)
            return len(expired)


class InMemoryAttendance:
    def __init__(self, *, conflicts: int = 0):
        self._lock = threading.Lock()
        self._by_key: dict[tuple[int, int, date], AttendanceRecord] = {}
        self._id = 0
        self.conflicts = conflicts
        self.upsert_calls = 0

    def get_for_student_and_date(self, *, student_id: int, subject_id: int, attendance_date: date):
        return self._by_key.get((student_id, subject_id, attendance_date))

    def get_recent_for_student(self, student_id: int, limit: int):
        items = [r for r in self._by_key.values() if r.student_id == student_id]
        items.sort(key=lambda r: r.marked_at, reverse=True)
        return items[:limit]

    def list_for_subject_and_date(self, *, subject_id: int, attendance_date: date):
        return [r for (_, sid, d), r in self._by_key.items() if sid == subject_id and d == attendance_date]

    def all(self):
        return list(self._by_key.values())

    def upsert_for_day(self, *, student_id, subject_id, attendance_date, status, marked_at, **fields) -> AttendanceRecord:
        with self._lock:
            self.upsert_calls += 1
            if self.conflicts > 0:
                self.conflicts -= 1
                raise StoreConflict("Deadlock found when trying to get lock")
            key = (student_id, subject_id, attendance_date)
            existing = self._by_key.get(key)
            if existing is None:
                self._id += 1
                attendance_id = self._id
            else:
                attendance_id = existing.attendance_id
            rec = AttendanceRecord(
                attendance_id=attendance_id,
                student_id=student_id,
                subject_id=subject_id,
                attendance_date=attendance_date,
                status=status,
                marked_at=marked_at,
                **fields,
            )
            self._by_key[key] = rec
            return rec


class RecordingNotifier:
    def __init__(self, *, fail: bool = False):
        self.sent = []
        self.fail = fail

    def notify(self, notification) -> None:
        if self.fail:
            raise RuntimeError("mail server down")
        self.sent.append(notification)


class FakeCursor:
    """DB-API cursor double; ``fail_on`` maps an SQL fragment to the error it raises."""

    def __init__(self, rows=None, *, rowcount: int = 1, fail_on=None):
        self.rows = list(rows or [])
        self.rowcount = rowcount
        self.lastrowid = None
        self.fail_on = dict(fail_on or {})
        self.executed = []
        self.closed = False

    def execute(self, sql, params=None):
        self.executed.append((sql, params))
        for fragment, exc in self.fail_on.items():
            if fragment in sql:
                raise exc

    def fetchone(self):
        return self.rows.pop(0) if self.rows else None

    def fetchall(self):
        rows, self.rows = self.rows, []
        return rows

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, cursor):
        self._cursor = cursor
        self.committed = False
        self.rollbacks = 0
        self.closed = False

    @property
    def rolled_back(self) -> bool:
        return self.rollbacks > 0

    def cursor(self, dictionary=True):
        return self._cursor

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed = True


class FakeFactory:
    def __init__(self, conn):
        self.conn = conn

    def connect(self):
        return self.conn
