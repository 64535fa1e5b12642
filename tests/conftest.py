from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from src.campus_attendance.campus_attendance.sessions.model import ClassWindow
from src.campus_attendance.campus_attendance.subjects.model import Subject

from tests.fakes import STUDENT_ID, SUBJECT_ID, TEACHER_ID, FakeClock, InMemoryAttendance, InMemoryQRSessions, InMemorySubjects


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 3, 3, 8, 55, 0)


@pytest.fixture
def clock(fixed_now) -> FakeClock:
    return FakeClock(fixed_now)


@pytest.fixture
def class_window(fixed_now) -> ClassWindow:
    start = fixed_now.replace(hour=9, minute=0)
    return ClassWindow(start=start, end=start + timedelta(hours=1))


@pytest.fixture
def subjects() -> InMemorySubjects:
    subject = Subject(
        subject_id=SUBJECT_ID,
        name="Data Structures",
        code="CS201",
        teacher_id=TEACHER_ID,
        enrolled_student_ids=frozenset({STUDENT_ID, 102, 103}),
    )
    return InMemorySubjects({SUBJECT_ID: subject})


@pytest.fixture
def sessions_repo() -> InMemoryQRSessions:
    return InMemoryQRSessions()


@pytest.fixture
def attendance_repo() -> InMemoryAttendance:
    return InMemoryAttendance()
