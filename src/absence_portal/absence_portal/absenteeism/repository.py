from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import AbsenteeismRecord, AbsenteeismStats


class AbsenteeismRepository(Protocol):
    def list_page(self, *, student_id: Optional[str], offset: int, limit: int) -> Sequence[dict]:
        """Return UI rows joined with the student summary and the OTP count."""

        raise NotImplementedError

    def count(self, *, student_id: Optional[str] = None) -> int:
        raise NotImplementedError

    def stats(self) -> AbsenteeismStats:
        raise NotImplementedError

    def get_by_id(self, absenteeism_id: str) -> Optional[AbsenteeismRecord]:
        raise NotImplementedError

    def get_with_student(self, absenteeism_id: str) -> Optional[dict]:
        """Record summary with ``student`` (full_name, class_name, school_number, parents)."""

        raise NotImplementedError

    def create(self, *, student_id: str, warning_number: int, file_path: str) -> str:
        raise NotImplementedError

    def mark_viewed(self, absenteeism_id: str) -> None:
        raise NotImplementedError

    def delete(self, absenteeism_id: str) -> bool:
        raise NotImplementedError
