from datetime import date, datetime

import mysql.connector
import pytest
from mysql.connector import errorcode

from src.campus_attendance.campus_attendance.attendance.mysql_attendance_repository import MySQLAttendanceRepository
from src.campus_attendance.campus_attendance.core.enums import AttendanceStatus
from src.campus_attendance.campus_attendance.database.bootstrap import _iter_sql_statements, _strip_create_db_and_use
from src.campus_attendance.campus_attendance.database.connection import DBConfig, DatabaseConnection
from src.campus_attendance.campus_attendance.database.mysql_base import StoreConflict, db_cursor, is_duplicate_key

from tests.fakes import FakeConnection, FakeCursor, FakeFactory


def test_db_cursor_commits_on_success():
    conn = FakeConnection(FakeCursor())

    with db_cursor(FakeFactory(conn)) as (_, cur):
        cur.execute("SELECT 1")

    assert conn.committed and not conn.rolled_back and conn.closed


def test_db_cursor_turns_deadlock_into_store_conflict():
    conn = FakeConnection(FakeCursor())

    with pytest.raises(StoreConflict):
        with db_cursor(FakeFactory(conn)):
            raise mysql.connector.errors.DatabaseError(msg="Deadlock found", errno=errorcode.ER_LOCK_DEADLOCK)

    assert conn.rolled_back and not conn.committed and conn.closed


def test_db_cursor_propagates_other_errors():
    conn = FakeConnection(FakeCursor())

    with pytest.raises(mysql.connector.errors.ProgrammingError):
        with db_cursor(FakeFactory(conn)):
            raise mysql.connector.errors.ProgrammingError(msg="syntax", errno=errorcode.ER_PARSE_ERROR)

    assert conn.rolled_back


def test_duplicate_key_detection():
    dup = mysql.connector.IntegrityError(msg="Duplicate entry", errno=errorcode.ER_DUP_ENTRY)
    fk = mysql.connector.IntegrityError(msg="FK", errno=errorcode.ER_NO_REFERENCED_ROW_2)

    assert is_duplicate_key(dup)
    assert not is_duplicate_key(fk)


def test_attendance_upsert_reads_back_row():
    row = {
        "attendance_id": 5,
        "student_id": 101,
        "subject_id": 3,
        "teacher_id": 7,
        "attendance_date": date(2025, 3, 3),
        "status": "Late",
        "marked_at": datetime(2025, 3, 3, 9, 2),
        "source_session_id": 9,
        "class_start": datetime(2025, 3, 3, 9, 0),
        "class_end": datetime(2025, 3, 3, 10, 0),
        "latitude": None,
        "longitude": None,
        "accuracy": None,
        "user_agent": "Mozilla/5.0",
        "device_type": None,
        "ip_address": None,
        "remarks": "Late by 2 min",
    }
    cur = FakeCursor([row])
    repo = MySQLAttendanceRepository(FakeFactory(FakeConnection(cur)))

    record = repo.upsert_for_day(
        student_id=101,
        subject_id=3,
        attendance_date=date(2025, 3, 3),
        status=AttendanceStatus.LATE,
        marked_at=datetime(2025, 3, 3, 9, 2),
        teacher_id=7,
        source_session_id=9,
        class_start=datetime(2025, 3, 3, 9, 0),
        class_end=datetime(2025, 3, 3, 10, 0),
        remarks="Late by 2 min",
    )

    assert "ON DUPLICATE KEY UPDATE" in cur.executed[0][0]
    assert cur.executed[0][1][4] == "Late"
    assert record.status == AttendanceStatus.LATE
    assert record.location is None
    assert record.device_info.user_agent == "Mozilla/5.0"


def test_schema_statements_are_split_without_comments():
    sql = "-- header\nCREATE DATABASE x;\nUSE x;\nCREATE TABLE a (id INT); -- trailing\nCREATE TABLE b (id INT);\n"

    statements = list(_iter_sql_statements(_strip_create_db_and_use(sql)))

    assert len(statements) == 2
    assert all(s.startswith("CREATE TABLE") for s in statements)


def test_connection_factory_is_shared_per_config():
    config = DBConfig.from_dict({"host": "db.internal", "database": "attendance_a"})
    other = DBConfig.from_dict({"host": "db.internal", "database": "attendance_b"})

    first = DatabaseConnection.get_instance(config)

    assert DatabaseConnection.get_instance(DBConfig.from_dict({"host": "db.internal", "database": "attendance_a"})) is first
    assert DatabaseConnection.get_instance(other) is not first


def test_connections_open_without_autocommit(monkeypatch):
    seen = {}
    monkeypatch.setattr(mysql.connector, "connect", lambda **kwargs: seen.update(kwargs) or "conn")

    conn = DatabaseConnection(DBConfig.from_dict({"port": "3307"})).connect()

    assert conn == "conn"
    assert seen["autocommit"] is False
    assert seen["port"] == 3307
    assert seen["database"] == "campus_attendance"
