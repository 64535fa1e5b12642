from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Optional


@dataclass(frozen=True)
class Subject:
    """Read-only view of a subject as seen by the attendance core."""

    subject_id: int
    name: str
    code: str
    teacher_id: Optional[int]
    enrolled_student_ids: FrozenSet[int] = field(default_factory=frozenset)

    def is_enrolled(self, student_id: int) -> bool:
        return int(student_id) in self.enrolled_student_ids
