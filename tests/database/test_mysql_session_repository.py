from datetime import datetime, timedelta

import mysql.connector
import pytest
from mysql.connector import errorcode

from src.campus_attendance.campus_attendance.core.enums import AppendResult
from src.campus_attendance.campus_attendance.sessions.model import DeviceInfo, ScanEntry, ScanLocation
from src.campus_attendance.campus_attendance.sessions.mysql_session_repository import MySQLQRSessionRepository

from tests.fakes import FakeConnection, FakeCursor, FakeFactory, STUDENT_ID

NOW = datetime(2025, 3, 3, 9, 1, 30)
SESSION_ID = 12


def _entry():
    return ScanEntry(
        student_id=STUDENT_ID,
        scanned_at=NOW,
        location=ScanLocation(latitude=10.7769, longitude=106.7009, accuracy=8.0),
        device_info=DeviceInfo(user_agent="pytest-agent", device_type="mobile"),
    )


def _state(*, expires_at=NOW + timedelta(minutes=4), is_active=1, max_scans=None, scan_count=0, already_scanned=0):
    return {
        "expires_at": expires_at,
        "is_active": is_active,
        "max_scans": max_scans,
        "scan_count": scan_count,
        "already_scanned": already_scanned,
    }


def _append(cur):
    conn = FakeConnection(cur)
    repo = MySQLQRSessionRepository(FakeFactory(conn))
    result = repo.append_scan_if_allowed(session_id=SESSION_ID, entry=_entry(), now=NOW)
    return result, conn


def test_append_bumps_counter_then_inserts_scan():
    cur = FakeCursor(rowcount=1)

    result, conn = _append(cur)

    assert result == AppendResult.APPENDED
    assert conn.committed and not conn.rolled_back
    update_sql, update_params = cur.executed[0]
    assert update_sql.lstrip().startswith("UPDATE qr_sessions")
    assert "expires_at > %s" in update_sql
    assert "scan_count < max_scans" in update_sql
    assert update_params == (SESSION_ID, NOW)
    insert_sql, insert_params = cur.executed[1]
    assert "INSERT INTO qr_session_scans" in insert_sql
    assert insert_params[:3] == (SESSION_ID, STUDENT_ID, NOW)
    assert insert_params[6:8] == ("pytest-agent", "mobile")


@pytest.mark.parametrize(
    "state, expected",
    [
        (_state(expires_at=NOW), AppendResult.EXPIRED),
        (_state(is_active=0, max_scans=40, scan_count=12), AppendResult.EXPIRED),
        (_state(is_active=0, max_scans=2, scan_count=2), AppendResult.LIMIT_REACHED),
        (_state(already_scanned=1), AppendResult.ALREADY_SCANNED),
        (_state(is_active=0, max_scans=2, scan_count=2, already_scanned=1), AppendResult.ALREADY_SCANNED),
    ],
)
def test_refused_update_rolls_back_and_diagnoses(state, expected):
    cur = FakeCursor([state], rowcount=0)

    result, conn = _append(cur)

    assert result == expected
    assert conn.rollbacks == 1
    assert len(cur.executed) == 2
    diagnose_sql, diagnose_params = cur.executed[1]
    assert "FROM qr_sessions s" in diagnose_sql
    assert diagnose_params == (STUDENT_ID, SESSION_ID)
    assert not any("INSERT" in sql for sql, _ in cur.executed)


def test_missing_session_row_diagnoses_as_expired():
    cur = FakeCursor([], rowcount=0)

    result, conn = _append(cur)

    assert result == AppendResult.EXPIRED
    assert conn.rollbacks == 1


def test_duplicate_scan_insert_rolls_back_counter():
    dup = mysql.connector.IntegrityError(msg="Duplicate entry '12-101'", errno=errorcode.ER_DUP_ENTRY)
    cur = FakeCursor(rowcount=1, fail_on={"INSERT INTO qr_session_scans": dup})

    result, conn = _append(cur)

    assert result == AppendResult.ALREADY_SCANNED
    assert conn.rollbacks == 1
    assert [sql.lstrip().split()[0] for sql, _ in cur.executed] == ["UPDATE", "INSERT"]


def test_other_integrity_errors_propagate():
    fk = mysql.connector.IntegrityError(msg="Cannot add or update a child row", errno=errorcode.ER_NO_REFERENCED_ROW_2)
    cur = FakeCursor(rowcount=1, fail_on={"INSERT INTO qr_session_scans": fk})

    with pytest.raises(mysql.connector.IntegrityError):
        _append(cur)
