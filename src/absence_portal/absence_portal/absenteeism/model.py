from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class AbsenteeismRecord:
    """An uploaded absence letter for one student.

    ``file_path`` is relative to the upload directory.
    """

    absenteeism_id: str
    student_id: str
    warning_number: int
    file_path: str
    viewed_by_parent: bool = False
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class AbsenteeismStats:
    total: int
    viewed_count: int
    pending_count: int

    def to_dict(self) -> dict:
        return {"total": self.total, "viewed_count": self.viewed_count, "pending_count": self.pending_count}
