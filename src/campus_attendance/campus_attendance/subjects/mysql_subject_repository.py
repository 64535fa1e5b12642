from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Subject
from .repository import SubjectRepository


class MySQLSubjectRepository(SubjectRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, subject_id: int) -> Optional[Subject]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT subject_id, subject_name, subject_code, teacher_id
                FROM subjects
                WHERE subject_id=%s AND is_active=1
                """,
                (int(subject_id),),
            )
            r = fetchone(cur)
            if not r:
                return None

            cur.execute(
                "SELECT student_id FROM subject_enrollments WHERE subject_id=%s",
                (int(subject_id),),
            )
            enrolled = frozenset(int(row["student_id"]) for row in fetchall(cur))

            return Subject(
                subject_id=int(r["subject_id"]),
                name=r["subject_name"],
                code=r["subject_code"],
                teacher_id=int(r["teacher_id"]) if r.get("teacher_id") is not None else None,
                enrolled_student_ids=enrolled,
            )

    def is_enrolled(self, *, subject_id: int, student_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT 1 AS enrolled
                FROM subject_enrollments
                WHERE subject_id=%s AND student_id=%s
                """,
                (int(subject_id), int(student_id)),
            )
            return fetchone(cur) is not None
