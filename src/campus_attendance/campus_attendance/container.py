from __future__ import annotations

from dataclasses import dataclass

from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.recorder import AttendanceRecorder
from .attendance.service import AttendanceService
from .core.constants import DEFAULT_EXPIRY_MINUTES, DEFAULT_RADIUS_METERS
from .database.connection import DBConfig, DatabaseConnection
from .notifications.mysql_notifier import MySQLNotifier
from .sessions.issuer import SessionIssuer
from .sessions.mysql_session_repository import MySQLQRSessionRepository
from .sessions.service import QRSessionService
from .sessions.validator import ScanValidator
from .subjects.mysql_subject_repository import MySQLSubjectRepository


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    subjects_repo: MySQLSubjectRepository
    sessions_repo: MySQLQRSessionRepository
    attendance_repo: MySQLAttendanceRepository

    qr_session_service: QRSessionService
    attendance_service: AttendanceService


def build_container(
    *,
    db_config: dict,
    default_expiry_minutes: int = DEFAULT_EXPIRY_MINUTES,
    default_radius_meters: float = DEFAULT_RADIUS_METERS,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    subjects_repo = MySQLSubjectRepository(conn)
    sessions_repo = MySQLQRSessionRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)

    qr_session_service = QRSessionService(
        sessions_repo,
        subjects_repo,
        SessionIssuer(sessions_repo, subjects_repo),
        default_expiry_minutes=default_expiry_minutes,
        default_radius_meters=default_radius_meters,
    )
    attendance_service = AttendanceService(
        attendance_repo,
        subjects_repo,
        sessions_repo,
        ScanValidator(sessions_repo, subjects_repo),
        AttendanceRecorder(attendance_repo, strategy_factory=AttendanceStrategyFactory()),
        notifier=MySQLNotifier(conn),
    )

    return Container(
        conn=conn,
        subjects_repo=subjects_repo,
        sessions_repo=sessions_repo,
        attendance_repo=attendance_repo,
        qr_session_service=qr_session_service,
        attendance_service=attendance_service,
    )
