from __future__ import annotations

from typing import Optional, Protocol

from .model import Subject


class SubjectRepository(Protocol):
    """Enrollment lookup.

    Subjects are owned by the academic subsystem; the attendance core only reads them.
    """

    def get_by_id(self, subject_id: int) -> Optional[Subject]:
        raise NotImplementedError

    def is_enrolled(self, *, subject_id: int, student_id: int) -> bool:
        raise NotImplementedError
