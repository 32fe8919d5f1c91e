from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from werkzeug.security import generate_password_hash

from ..common.pagination import Page
from ..common.validators import optional_str, require_non_empty
from ..core.constants import PARENT_PASSWORD_SUFFIX
from ..core.enums import ImportMode, StudentStatus
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from .excel_import import ParsedParentRow, ParsedStudent
from .model import ParentLink
from .repository import ParentRepository, StudentRepository

logger = logging.getLogger(__name__)

PasswordHasher = Callable[[str], str]


def parent_initial_password(phone: str) -> str:
    """Parents log in with their phone as username and its last six characters as password."""
    return phone[-PARENT_PASSWORD_SUFFIX:]


@dataclass(frozen=True)
class NewParent:
    full_name: str
    phone: str


class StudentService:
    """Use cases: manage students and their parents (admin)."""

    def __init__(
        self,
        students: StudentRepository,
        parents: ParentRepository,
        *,
        password_hasher: PasswordHasher = generate_password_hash,
    ):
        self._students = students
        self._parents = parents
        self._hash = password_hasher

    def _require_student(self, student_id: str):
        student = self._students.get_by_id(student_id)
        if not student:
            raise NotFoundError("Student not found.")
        return student

    def _require_parent(self, parent_id: str):
        parent = self._parents.get_by_id(parent_id)
        if not parent:
            raise NotFoundError("Parent not found.")
        return parent

    def list_students(self, *, page: Page, search: Optional[str] = None) -> dict:
        search = optional_str(search)
        return {
            "students": list(self._students.list_page(search=search, offset=page.offset, limit=page.limit)),
            "pagination": page.meta(self._students.count(search=search)),
        }

    def get_student(self, student_id: str) -> dict:
        detail = self._students.get_detail(student_id)
        if not detail:
            raise NotFoundError("Student not found.")
        return detail

    def create_student(
        self,
        *,
        school_number: str,
        full_name: str,
        class_name: str,
        parents: Sequence[NewParent] = (),
    ) -> dict:
        school_number = require_non_empty(school_number, "School number")
        full_name = require_non_empty(full_name, "Full name")
        class_name = require_non_empty(class_name, "Class")

        if self._students.get_by_school_number(school_number):
            raise ConflictError("This school number is already registered.")

        links = [
            ParentLink(
                student_id="",
                full_name=p.full_name.strip(),
                phone=p.phone.strip(),
                password_hash=self._hash(parent_initial_password(p.phone.strip())),
            )
            for p in parents
            if (p.full_name or "").strip() and (p.phone or "").strip()
        ]
        student_id = self._students.create(
            school_number=school_number,
            full_name=full_name,
            class_name=class_name,
            parents=links,
        )
        logger.info("Created student %s (%s) with %d parent(s)", school_number, student_id, len(links))
        return self.get_student(student_id)

    def update_student(
        self,
        student_id: str,
        *,
        full_name: Optional[str] = None,
        class_name: Optional[str] = None,
        status: Optional[str] = None,
    ) -> dict:
        self._require_student(student_id)

        new_status: Optional[StudentStatus] = None
        if status is not None:
            try:
                new_status = StudentStatus(str(status).upper())
            except ValueError:
                raise ValidationError("Status must be ACTIVE or INACTIVE.")
        if full_name is not None:
            full_name = require_non_empty(full_name, "Full name")
        if class_name is not None:
            class_name = require_non_empty(class_name, "Class")

        self._students.update(student_id, full_name=full_name, class_name=class_name, status=new_status)
        return self.get_student(student_id)

    def delete_student(self, student_id: str) -> dict:
        self._require_student(student_id)
        self._students.delete(student_id)
        logger.info("Deleted student %s", student_id)
        return {"message": "Student deleted successfully."}

    def bulk_delete(self, student_ids: Sequence[str]) -> dict:
        ids = [str(i) for i in (student_ids or []) if i]
        if not ids:
            raise ValidationError("No students selected for deletion.")
        deleted = self._students.delete_many(ids)
        logger.info("Bulk deleted %d student(s)", deleted)
        return {"message": f"{deleted} student(s) deleted successfully.", "deleted_count": deleted}

    def assign_parent(self, student_id: str, parent_id: str) -> dict:
        require_non_empty(parent_id, "Parent ID")
        self._require_student(student_id)
        self._require_parent(parent_id)
        self._students.link_parent(student_id, parent_id)
        return self.get_student(student_id)

    def update_parent(self, parent_id: str, *, full_name: Optional[str] = None, phone: Optional[str] = None) -> dict:
        self._require_parent(parent_id)
        if full_name is not None:
            full_name = require_non_empty(full_name, "Parent name")
        if phone is not None:
            phone = require_non_empty(phone, "Phone")
        self._parents.update(parent_id, full_name=full_name, phone=phone)
        return self._require_parent(parent_id).to_dict()

    def remove_parent(self, student_id: str, parent_id: str) -> dict:
        self._require_student(student_id)
        linked = {p.parent_id for p in self._students.list_parents(student_id)}
        if parent_id not in linked:
            raise ValidationError("This parent is not linked to the student.")
        self._students.unlink_parent(student_id, parent_id)
        return self.get_student(student_id)


@dataclass
class StudentImportResult:
    total_parsed: int
    created: int = 0
    updated: int = 0
    errors: List[str] = field(default_factory=list)
    students: List[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_parsed": self.total_parsed,
            "created": self.created,
            "updated": self.updated,
            "errors": self.errors,
            "students": self.students,
        }


@dataclass
class ParentImportResult:
    total_rows: int
    matched: int = 0
    unmatched: int = 0
    parents_created: int = 0
    parents_updated: int = 0
    errors: List[str] = field(default_factory=list)
    preview: List[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_rows": self.total_rows,
            "matched": self.matched,
            "unmatched": self.unmatched,
            "parents_created": self.parents_created,
            "parents_updated": self.parents_updated,
            "errors": self.errors,
            "preview": self.preview,
        }


class StudentImportService:
    """Use cases: bulk import of students and parents from parsed spreadsheets."""

    def __init__(
        self,
        students: StudentRepository,
        parents: ParentRepository,
        *,
        password_hasher: PasswordHasher = generate_password_hash,
    ):
        self._students = students
        self._parents = parents
        self._hash = password_hasher

    def import_students(self, rows: Sequence[ParsedStudent], mode: ImportMode) -> StudentImportResult:
        if not rows:
            raise ValidationError("No student rows were found in the spreadsheet.")

        result = StudentImportResult(total_parsed=len(rows), students=[r.to_dict() for r in rows])
        if mode == ImportMode.PREVIEW:
            return result

        existing = self._students.map_by_school_numbers([r.school_number for r in rows])
        for row in rows:
            try:
                current = existing.get(row.school_number)
                if current:
                    self._students.update(current.student_id, full_name=row.full_name, class_name=row.class_name)
                    result.updated += 1
                else:
                    self._students.create(
                        school_number=row.school_number,
                        full_name=row.full_name,
                        class_name=row.class_name,
                    )
                    result.created += 1
            except Exception as exc:
                logger.warning("Student import failed for %s: %s", row.school_number, exc)
                result.errors.append(f"{row.school_number} - {row.full_name}: {exc}")

        logger.info(
            "Student import: %d parsed, %d created, %d updated, %d errors",
            result.total_parsed, result.created, result.updated, len(result.errors),
        )
        return result

    def import_parents(self, rows: Sequence[ParsedParentRow], mode: ImportMode) -> ParentImportResult:
        if not rows:
            raise ValidationError("No parent rows were found in the spreadsheet.")

        result = ParentImportResult(total_rows=len(rows))
        students = self._students.map_by_school_numbers([r.school_number for r in rows])

        links: List[ParentLink] = []
        for row in rows:
            student = students.get(row.school_number)
            preview = row.to_dict()
            preview["matched"] = student is not None
            preview["student_name"] = student.full_name if student else ""
            result.preview.append(preview)

            if not student:
                result.unmatched += 1
                continue
            result.matched += 1

            for name, phone in ((row.parent1_name, row.parent1_phone), (row.parent2_name, row.parent2_phone)):
                if name and phone:
                    links.append(ParentLink(student_id=student.student_id, full_name=name, phone=phone))
                elif name:
                    result.errors.append(f"{row.school_number} parent {name}: phone number is missing")

        if mode == ImportMode.PREVIEW:
            return result

        known = self._parents.map_by_phones([link.phone for link in links])
        hashes = {
            phone: self._hash(parent_initial_password(phone))
            for phone in dict.fromkeys(link.phone for link in links)
            if phone not in known
        }
        links = [
            ParentLink(
                student_id=link.student_id,
                full_name=link.full_name,
                phone=link.phone,
                password_hash=hashes.get(link.phone),
            )
            for link in links
        ]
        outcome = self._parents.save_links(links)
        result.parents_created = outcome.created
        result.parents_updated = outcome.updated

        logger.info(
            "Parent import: %d rows, %d matched, %d created, %d updated",
            result.total_rows, result.matched, result.parents_created, result.parents_updated,
        )
        return result
