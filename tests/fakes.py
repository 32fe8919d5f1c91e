from __future__ import annotations

import itertools
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Dict, Optional, Sequence

from src.absence_portal.absence_portal.absenteeism.model import AbsenteeismRecord, AbsenteeismStats
from src.absence_portal.absence_portal.core.enums import Role, StudentStatus
from src.absence_portal.absence_portal.otp.model import OtpCode
from src.absence_portal.absence_portal.students.model import LinkOutcome, Parent, ParentLink, Student
from src.absence_portal.absence_portal.users.model import User

_ids = itertools.count(1)


def next_id(prefix: str) -> str:
    return f"{prefix}-{next(_ids)}"


class FakeClock:
    def __init__(self, now: datetime = datetime(2026, 3, 2, 9, 0, 0)):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class InMemoryUsers:
    def __init__(self):
        self.users: Dict[str, User] = {}

    def add(self, user: User) -> User:
        self.users[user.user_id] = user
        return user

    def get_by_id(self, user_id: str) -> Optional[User]:
        return self.users.get(user_id)

    def get_by_username(self, username: str) -> Optional[User]:
        return next((u for u in self.users.values() if u.username == username), None)

    def update_password(self, user_id: str, *, password_hash: str) -> bool:
        if user_id not in self.users:
            return False
        self.users[user_id] = replace(self.users[user_id], password_hash=password_hash)
        return True


class InMemoryParents:
    def __init__(self, users: InMemoryUsers):
        self.users = users
        self.parents: Dict[str, Parent] = {}
        self.links: set[tuple[str, str]] = set()

    def get_by_id(self, parent_id: str) -> Optional[Parent]:
        return self.parents.get(parent_id)

    def map_by_phones(self, phones: Sequence[str]) -> Dict[str, Parent]:
        wanted = set(phones)
        return {p.phone: p for p in self.parents.values() if p.phone in wanted}

    def update(self, parent_id: str, *, full_name: Optional[str] = None, phone: Optional[str] = None) -> None:
        parent = self.parents[parent_id]
        self.parents[parent_id] = replace(
            parent,
            full_name=full_name if full_name is not None else parent.full_name,
            phone=phone if phone is not None else parent.phone,
        )

    def save_links(self, links: Sequence[ParentLink]) -> LinkOutcome:
        created = updated = 0
        for link in links:
            parent = self.map_by_phones([link.phone]).get(link.phone)
            if parent:
                self.update(parent.parent_id, full_name=link.full_name)
                updated += 1
            else:
                if not link.password_hash:
                    raise ValueError(f"Missing password hash for new parent {link.phone}")
                user = self.users.add(
                    User(user_id=next_id("user"), username=link.phone, password_hash=link.password_hash, role=Role.PARENT)
                )
                parent = Parent(parent_id=next_id("parent"), user_id=user.user_id, full_name=link.full_name, phone=link.phone)
                self.parents[parent.parent_id] = parent
                created += 1
            self.links.add((link.student_id, parent.parent_id))
        return LinkOutcome(created=created, updated=updated)


class InMemoryStudents:
    def __init__(self, parents: InMemoryParents):
        self.parents = parents
        self.students: Dict[str, Student] = {}

    def add(self, school_number: str, full_name: str, class_name: str) -> Student:
        student = Student(
            student_id=next_id("student"),
            school_number=school_number,
            full_name=full_name,
            class_name=class_name,
        )
        self.students[student.student_id] = student
        return student

    def _row(self, s: Student) -> dict:
        return {
            "id": s.student_id,
            "school_number": s.school_number,
            "full_name": s.full_name,
            "class_name": s.class_name,
            "status": s.status.value,
            "parents": [p.to_dict() for p in self.list_parents(s.student_id)],
        }

    def _matching(self, search: Optional[str]) -> list[Student]:
        rows = sorted(self.students.values(), key=lambda s: (s.class_name, s.school_number))
        if not search:
            return rows
        needle = search.lower()
        return [
            s for s in rows
            if needle in s.full_name.lower() or needle in s.school_number.lower() or needle in s.class_name.lower()
        ]

    def list_page(self, *, search: Optional[str], offset: int, limit: int) -> Sequence[dict]:
        return [self._row(s) for s in self._matching(search)[offset:offset + limit]]

    def count(self, *, search: Optional[str]) -> int:
        return len(self._matching(search))

    def get_by_id(self, student_id: str) -> Optional[Student]:
        return self.students.get(student_id)

    def get_by_school_number(self, school_number: str) -> Optional[Student]:
        return next((s for s in self.students.values() if s.school_number == school_number), None)

    def map_by_school_numbers(self, school_numbers: Sequence[str]) -> Dict[str, Student]:
        wanted = set(school_numbers)
        return {s.school_number: s for s in self.students.values() if s.school_number in wanted}

    def get_detail(self, student_id: str) -> Optional[dict]:
        student = self.students.get(student_id)
        if not student:
            return None
        row = self._row(student)
        row["absenteeisms"] = []
        return row

    def create(self, *, school_number: str, full_name: str, class_name: str, parents: Sequence[ParentLink] = ()) -> str:
        student = self.add(school_number, full_name, class_name)
        self.parents.save_links([replace(p, student_id=student.student_id) for p in parents])
        return student.student_id

    def update(
        self,
        student_id: str,
        *,
        full_name: Optional[str] = None,
        class_name: Optional[str] = None,
        status: Optional[StudentStatus] = None,
    ) -> None:
        s = self.students[student_id]
        self.students[student_id] = replace(
            s,
            full_name=full_name if full_name is not None else s.full_name,
            class_name=class_name if class_name is not None else s.class_name,
            status=status if status is not None else s.status,
        )

    def delete(self, student_id: str) -> bool:
        self.parents.links = {link for link in self.parents.links if link[0] != student_id}
        return self.students.pop(student_id, None) is not None

    def delete_many(self, student_ids: Sequence[str]) -> int:
        return sum(1 for sid in student_ids if self.delete(sid))

    def list_parents(self, student_id: str) -> Sequence[Parent]:
        return [self.parents.parents[pid] for sid, pid in sorted(self.parents.links) if sid == student_id]

    def link_parent(self, student_id: str, parent_id: str) -> None:
        self.parents.links.add((student_id, parent_id))

    def unlink_parent(self, student_id: str, parent_id: str) -> bool:
        if (student_id, parent_id) not in self.parents.links:
            return False
        self.parents.links.discard((student_id, parent_id))
        return True


class InMemoryAbsenteeisms:
    def __init__(self, students: InMemoryStudents):
        self.students = students
        self.records: Dict[str, AbsenteeismRecord] = {}
        self.otps: Optional["InMemoryOtps"] = None

    def add(self, student_id: str, *, warning_number: int = 1, file_path: str = "letter.pdf") -> AbsenteeismRecord:
        record_id = self.create(student_id=student_id, warning_number=warning_number, file_path=file_path)
        return self.records[record_id]

    def _summary(self, record: AbsenteeismRecord) -> dict:
        student = self.students.students[record.student_id]
        return {
            "id": record.absenteeism_id,
            "student_id": record.student_id,
            "warning_number": record.warning_number,
            "viewed_by_parent": record.viewed_by_parent,
            "created_at": record.created_at.isoformat() if record.created_at else None,
            "student": {
                "full_name": student.full_name,
                "class_name": student.class_name,
                "school_number": student.school_number,
            },
        }

    def list_page(self, *, student_id: Optional[str], offset: int, limit: int) -> Sequence[dict]:
        rows = [r for r in self.records.values() if not student_id or r.student_id == student_id]
        return [self._summary(r) for r in rows[offset:offset + limit]]

    def count(self, *, student_id: Optional[str] = None) -> int:
        return sum(1 for r in self.records.values() if not student_id or r.student_id == student_id)

    def stats(self) -> AbsenteeismStats:
        viewed = sum(1 for r in self.records.values() if r.viewed_by_parent)
        return AbsenteeismStats(total=len(self.records), viewed_count=viewed, pending_count=len(self.records) - viewed)

    def get_by_id(self, absenteeism_id: str) -> Optional[AbsenteeismRecord]:
        return self.records.get(absenteeism_id)

    def get_with_student(self, absenteeism_id: str) -> Optional[dict]:
        record = self.records.get(absenteeism_id)
        if not record:
            return None
        out = self._summary(record)
        out["student"]["parents"] = [p.to_dict() for p in self.students.list_parents(record.student_id)]
        return out

    def create(self, *, student_id: str, warning_number: int, file_path: str) -> str:
        record = AbsenteeismRecord(
            absenteeism_id=next_id("abs"),
            student_id=student_id,
            warning_number=warning_number,
            file_path=file_path,
            created_at=datetime(2026, 3, 1, 8, 0, 0),
        )
        self.records[record.absenteeism_id] = record
        return record.absenteeism_id

    def mark_viewed(self, absenteeism_id: str) -> None:
        self.records[absenteeism_id] = replace(self.records[absenteeism_id], viewed_by_parent=True)

    def delete(self, absenteeism_id: str) -> bool:
        if self.otps is not None:
            self.otps.codes = {k: o for k, o in self.otps.codes.items() if o.absenteeism_id != absenteeism_id}
        return self.records.pop(absenteeism_id, None) is not None


class InMemoryOtps:
    def __init__(self, clock: Optional[FakeClock] = None):
        self.clock = clock or FakeClock()
        self.codes: Dict[str, OtpCode] = {}

    def get_by_token(self, token: str) -> Optional[OtpCode]:
        return next((o for o in self.codes.values() if o.token == token), None)

    def create_superseding(
        self,
        *,
        absenteeism_id: str,
        parent_phone: str,
        code_hash: str,
        token: str,
        expires_at: datetime,
    ) -> str:
        for key, o in list(self.codes.items()):
            if o.absenteeism_id == absenteeism_id and o.parent_phone == parent_phone and not o.is_used:
                self.codes[key] = replace(o, is_used=True)
        otp = OtpCode(
            otp_id=next_id("otp"),
            absenteeism_id=absenteeism_id,
            parent_phone=parent_phone,
            code_hash=code_hash,
            token=token,
            expires_at=expires_at,
            created_at=self.clock(),
        )
        self.codes[otp.otp_id] = otp
        return otp.otp_id

    def register_failed_attempt(self, otp_id: str, *, max_attempts: int) -> bool:
        otp = self.codes[otp_id]
        if otp.attempt_count >= max_attempts:
            return False
        self.codes[otp_id] = replace(otp, attempt_count=otp.attempt_count + 1)
        return True

    def mark_verified(self, otp_id: str, *, verified_at: datetime) -> None:
        otp = self.codes[otp_id]
        if otp.verified_at is None:
            self.codes[otp_id] = replace(otp, verified_at=verified_at)

    def list_for_absenteeism(self, absenteeism_id: str) -> Sequence[OtpCode]:
        return [o for o in reversed(list(self.codes.values())) if o.absenteeism_id == absenteeism_id]
