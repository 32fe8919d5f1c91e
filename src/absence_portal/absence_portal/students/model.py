from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import StudentStatus


@dataclass(frozen=True)
class Student:
    student_id: str
    school_number: str
    full_name: str
    class_name: str
    status: StudentStatus = StudentStatus.ACTIVE
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Parent:
    """A guardian. Every parent owns a PARENT user whose username is the phone."""

    parent_id: str
    user_id: str
    full_name: str
    phone: str

    def to_dict(self) -> dict:
        return {"id": self.parent_id, "full_name": self.full_name, "phone": self.phone}


@dataclass(frozen=True)
class ParentLink:
    """Request to find-or-create a parent by phone and link it to a student.

    ``password_hash`` is only needed when no parent with this phone exists yet.
    """

    student_id: str
    full_name: str
    phone: str
    password_hash: Optional[str] = None


@dataclass(frozen=True)
class LinkOutcome:
    created: int = 0
    updated: int = 0
