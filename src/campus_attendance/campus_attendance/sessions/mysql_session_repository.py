from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

import mysql.connector

from ..core.enums import AppendResult
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from ..geofence.model import Geofence
from .model import ClassWindow, DeviceInfo, NewSession, QRSession, ScanEntry, ScanLocation
from .repository import DuplicateCodeError, QRSessionRepository

_SESSION_COLUMNS = """
    session_id, code, token, subject_id, teacher_id, class_start, class_end,
    latitude, longitude, radius_meters, address, expires_at, max_scans,
    scan_count, is_active, description, created_at
"""


class MySQLQRSessionRepository(QRSessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def code_exists(self, code: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT 1 AS found FROM qr_sessions WHERE code=%s", (code,))
            return fetchone(cur) is not None

    def create(self, new_session: NewSession) -> QRSession:
        fence = new_session.geofence
        with db_cursor(self._conn_factory) as (_, cur):
            try:
                cur.execute(
                    """
                    INSERT INTO qr_sessions(
                        code, token, subject_id, teacher_id, class_start, class_end,
                        latitude, longitude, radius_meters, address,
                        expires_at, max_scans, scan_count, is_active, description, created_at
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,0,1,%s,%s)
                    """,
                    (
                        new_session.code,
                        new_session.token,
                        int(new_session.subject_id),
                        int(new_session.teacher_id),
                        new_session.class_window.start,
                        new_session.class_window.end,
                        fence.latitude if fence else None,
                        fence.longitude if fence else None,
                        fence.radius_meters if fence else None,
                        fence.address if fence else None,
                        new_session.expires_at,
                        new_session.max_scans,
                        new_session.description,
                        new_session.created_at,
                    ),
                )
            except mysql.connector.IntegrityError as exc:
                if is_duplicate_key(exc):
                    raise DuplicateCodeError(new_session.code) from exc
                raise
            session_id = int(cur.lastrowid)

        return QRSession(
            session_id=session_id,
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

    def get_by_code_and_token(self, code: str, token: str) -> Optional[QRSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SESSION_COLUMNS} FROM qr_sessions WHERE code=%s AND token=%s",
                (code, token),
            )
            r = fetchone(cur)
            if not r:
                return None
            scans = self._load_scans(cur, [int(r["session_id"])])
            return self._to_session(r, scans.get(int(r["session_id"]), []))

    def get_by_code(self, code: str) -> Optional[QRSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_SESSION_COLUMNS} FROM qr_sessions WHERE code=%s", (code,))
            r = fetchone(cur)
            if not r:
                return None
            scans = self._load_scans(cur, [int(r["session_id"])])
            return self._to_session(r, scans.get(int(r["session_id"]), []))

    def append_scan_if_allowed(self, *, session_id: int, entry: ScanEntry, now: datetime) -> AppendResult:
        location = entry.location
        device = entry.device_info
        with db_cursor(self._conn_factory) as (conn, cur):
            # Counter first: the row lock on qr_sessions serializes scans of one
            # session before the scan insert takes its foreign-key lock.
            cur.execute(
                """
                UPDATE qr_sessions
                SET is_active = CASE
                        WHEN max_scans IS NOT NULL AND scan_count + 1 >= max_scans THEN 0
                        ELSE is_active
                    END,
                    scan_count = scan_count + 1
                WHERE session_id=%s
                  AND is_active=1
                  AND expires_at > %s
                  AND (max_scans IS NULL OR scan_count < max_scans)
                """,
                (int(session_id), now),
            )
            if cur.rowcount != 1:
                conn.rollback()
                return self._diagnose(cur, session_id=int(session_id), student_id=entry.student_id, now=now)

            try:
                cur.execute(
                    """
                    INSERT INTO qr_session_scans(
                        session_id, student_id, scanned_at, latitude, longitude, accuracy,
                        user_agent, device_type, ip_address
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(session_id),
                        int(entry.student_id),
                        entry.scanned_at,
                        location.latitude if location else None,
                        location.longitude if location else None,
                        location.accuracy if location else None,
                        device.user_agent if device else None,
                        device.device_type if device else None,
                        device.ip_address if device else None,
                    ),
                )
            except mysql.connector.IntegrityError as exc:
                if not is_duplicate_key(exc):
                    raise
                # Undo the counter bump together with the rejected scan.
                conn.rollback()
                return AppendResult.ALREADY_SCANNED

            return AppendResult.APPENDED

    def list_active_for_teacher(self, teacher_id: int, *, now: datetime) -> Sequence[QRSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM qr_sessions
                WHERE teacher_id=%s AND is_active=1 AND expires_at > %s
                ORDER BY created_at DESC
                """,
                (int(teacher_id), now),
            )
            rows = fetchall(cur)
            scans = self._load_scans(cur, [int(r["session_id"]) for r in rows])
            return [self._to_session(r, scans.get(int(r["session_id"]), [])) for r in rows]

    def deactivate_expired(self, *, now: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE qr_sessions SET is_active=0 WHERE is_active=1 AND expires_at <= %s",
                (now,),
            )
            return int(cur.rowcount)

    def _diagnose(self, cur, *, session_id: int, student_id: int, now: datetime) -> AppendResult:
        cur.execute(
            """
            SELECT s.expires_at, s.is_active, s.max_scans, s.scan_count,
                   EXISTS(
                       SELECT 1 FROM qr_session_scans sc
                       WHERE sc.session_id = s.session_id AND sc.student_id=%s
                   ) AS already_scanned
            FROM qr_sessions s
            WHERE s.session_id=%s
            """,
            (int(student_id), int(session_id)),
        )
        r = fetchone(cur)
        if not r or r["expires_at"] <= now:
            return AppendResult.EXPIRED
        limit_hit = r.get("max_scans") is not None and int(r["scan_count"]) >= int(r["max_scans"])
        if not bool(r["is_active"]) and not limit_hit:
            return AppendResult.EXPIRED
        if bool(r["already_scanned"]):
            return AppendResult.ALREADY_SCANNED
        return AppendResult.LIMIT_REACHED

    @staticmethod
    def _load_scans(cur, session_ids: Iterable[int]) -> Dict[int, List[ScanEntry]]:
        ids = list(session_ids)
        if not ids:
            return {}
        placeholders = ",".join(["%s"] * len(ids))
        cur.execute(
            f"""
            SELECT session_id, student_id, scanned_at, latitude, longitude, accuracy,
                   user_agent, device_type, ip_address
            FROM qr_session_scans
            WHERE session_id IN ({placeholders})
            ORDER BY scan_id ASC
            """,
            tuple(ids),
        )
        out: Dict[int, List[ScanEntry]] = {}
        for r in fetchall(cur):
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
            out.setdefault(int(r["session_id"]), []).append(
                ScanEntry(
                    student_id=int(r["student_id"]),
                    scanned_at=r["scanned_at"],
                    location=location,
                    device_info=device,
                )
            )
        return out

    @staticmethod
    def _to_session(r: Dict[str, Any], scans: List[ScanEntry]) -> QRSession:
        fence = None
        if r.get("latitude") is not None and r.get("longitude") is not None:
            fence = Geofence(
                latitude=float(r["latitude"]),
                longitude=float(r["longitude"]),
                radius_meters=float(r["radius_meters"]) if r.get("radius_meters") is not None else None,
                address=r.get("address"),
            )
        return QRSession(
            session_id=int(r["session_id"]),
            code=r["code"],
            token=r["token"],
            subject_id=int(r["subject_id"]),
            teacher_id=int(r["teacher_id"]),
            class_window=ClassWindow(start=r["class_start"], end=r["class_end"]),
            geofence=fence,
            expires_at=r["expires_at"],
            created_at=r["created_at"],
            max_scans=int(r["max_scans"]) if r.get("max_scans") is not None else None,
            scan_count=int(r["scan_count"]),
            scans=tuple(scans),
            active=bool(r["is_active"]),
            description=r.get("description"),
        )
