from __future__ import annotations

from typing import Dict, Optional, Protocol, Sequence

from ..core.enums import StudentStatus
from .model import LinkOutcome, Parent, ParentLink, Student


class StudentRepository(Protocol):
    def list_page(self, *, search: Optional[str], offset: int, limit: int) -> Sequence[dict]:
        """Return UI rows (students with parents and absenteeism count)."""

        raise NotImplementedError

    def count(self, *, search: Optional[str]) -> int:
        raise NotImplementedError

    def get_by_id(self, student_id: str) -> Optional[Student]:
        raise NotImplementedError

    def get_by_school_number(self, school_number: str) -> Optional[Student]:
        raise NotImplementedError

    def map_by_school_numbers(self, school_numbers: Sequence[str]) -> Dict[str, Student]:
        raise NotImplementedError

    def get_detail(self, student_id: str) -> Optional[dict]:
        """Student with parents and absenteeism summaries (newest first)."""

        raise NotImplementedError

    def create(
        self,
        *,
        school_number: str,
        full_name: str,
        class_name: str,
        parents: Sequence[ParentLink] = (),
    ) -> str:
        """Create the student and link ``parents`` in one transaction.

        ``ParentLink.student_id`` is ignored; the new student's id is used.
        """

        raise NotImplementedError

    def update(
        self,
        student_id: str,
        *,
        full_name: Optional[str] = None,
        class_name: Optional[str] = None,
        status: Optional[StudentStatus] = None,
    ) -> None:
        raise NotImplementedError

    def delete(self, student_id: str) -> bool:
        raise NotImplementedError

    def delete_many(self, student_ids: Sequence[str]) -> int:
        raise NotImplementedError

    def list_parents(self, student_id: str) -> Sequence[Parent]:
        raise NotImplementedError

    def link_parent(self, student_id: str, parent_id: str) -> None:
        raise NotImplementedError

    def unlink_parent(self, student_id: str, parent_id: str) -> bool:
        raise NotImplementedError


class ParentRepository(Protocol):
    def get_by_id(self, parent_id: str) -> Optional[Parent]:
        raise NotImplementedError

    def map_by_phones(self, phones: Sequence[str]) -> Dict[str, Parent]:
        raise NotImplementedError

    def update(self, parent_id: str, *, full_name: Optional[str] = None, phone: Optional[str] = None) -> None:
        raise NotImplementedError

    def save_links(self, links: Sequence[ParentLink]) -> LinkOutcome:
        """Find-or-create each parent by phone and link it, all in one transaction."""

        raise NotImplementedError
