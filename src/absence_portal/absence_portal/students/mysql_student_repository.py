from __future__ import annotations

from collections import defaultdict
from typing import Any, Dict, List, Optional, Sequence

from ..common.datetime_utils import isoformat
from ..core.enums import StudentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, new_id
from .model import Parent, ParentLink, Student
from .mysql_parent_repository import to_parent, upsert_parent_links
from .repository import StudentRepository

_STUDENT_COLUMNS = "s.id, s.school_number, s.full_name, s.class_name, s.status, s.created_at"


def _to_student(row: Dict[str, Any]) -> Student:
    return Student(
        student_id=row["id"],
        school_number=row["school_number"],
        full_name=row["full_name"],
        class_name=row["class_name"],
        status=StudentStatus(row.get("status") or StudentStatus.ACTIVE.value),
        created_at=row.get("created_at"),
    )


def _student_row(student: Student) -> dict:
    return {
        "id": student.student_id,
        "school_number": student.school_number,
        "full_name": student.full_name,
        "class_name": student.class_name,
        "status": student.status.value,
        "created_at": isoformat(student.created_at),
    }


def _search_clause(search: Optional[str]) -> tuple[str, tuple]:
    if not search:
        return "", ()
    like = f"%{search}%"
    return "WHERE s.full_name LIKE %s OR s.school_number LIKE %s OR s.class_name LIKE %s", (like, like, like)


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _parents_for(self, cur, student_ids: Sequence[str]) -> Dict[str, List[Parent]]:
        out: Dict[str, List[Parent]] = defaultdict(list)
        if not student_ids:
            return out
        cur.execute(
            f"""
            SELECT sp.student_id, p.id, p.user_id, p.full_name, p.phone
            FROM student_parents sp
            JOIN parents p ON p.id = sp.parent_id
            WHERE sp.student_id IN ({in_clause(student_ids)})
            ORDER BY p.created_at
            """,
            tuple(student_ids),
        )
        for r in fetchall(cur):
            out[r["student_id"]].append(to_parent(r))
        return out

    def list_page(self, *, search: Optional[str], offset: int, limit: int) -> Sequence[dict]:
        where, params = _search_clause(search)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_STUDENT_COLUMNS},
                       (SELECT COUNT(*) FROM absenteeisms a WHERE a.student_id = s.id) AS absenteeism_count
                FROM students s
                {where}
                ORDER BY s.class_name ASC, s.school_number ASC
                LIMIT %s OFFSET %s
                """,
                (*params, int(limit), int(offset)),
            )
            rows = fetchall(cur)
            parents = self._parents_for(cur, [r["id"] for r in rows])

            out: list[dict] = []
            for r in rows:
                item = _student_row(_to_student(r))
                item["parents"] = [p.to_dict() for p in parents.get(r["id"], [])]
                item["absenteeism_count"] = int(r["absenteeism_count"] or 0)
                out.append(item)
            return out

    def count(self, *, search: Optional[str]) -> int:
        where, params = _search_clause(search)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM students s {where}", params)
            row = fetchone(cur)
            return int(row["total"]) if row else 0

    def get_by_id(self, student_id: str) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_STUDENT_COLUMNS} FROM students s WHERE s.id=%s", (student_id,))
            row = fetchone(cur)
            return _to_student(row) if row else None

    def get_by_school_number(self, school_number: str) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_STUDENT_COLUMNS} FROM students s WHERE s.school_number=%s", (school_number,))
            row = fetchone(cur)
            return _to_student(row) if row else None

    def map_by_school_numbers(self, school_numbers: Sequence[str]) -> Dict[str, Student]:
        numbers = list(dict.fromkeys(n for n in school_numbers if n))
        if not numbers:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_STUDENT_COLUMNS} FROM students s WHERE s.school_number IN ({in_clause(numbers)})",
                tuple(numbers),
            )
            return {r["school_number"]: _to_student(r) for r in fetchall(cur)}

    def get_detail(self, student_id: str) -> Optional[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_STUDENT_COLUMNS} FROM students s WHERE s.id=%s", (student_id,))
            row = fetchone(cur)
            if not row:
                return None
            detail = _student_row(_to_student(row))
            detail["parents"] = [p.to_dict() for p in self._parents_for(cur, [student_id]).get(student_id, [])]

            cur.execute(
                """
                SELECT id, warning_number, created_at, viewed_by_parent
                FROM absenteeisms
                WHERE student_id=%s
                ORDER BY created_at DESC
                """,
                (student_id,),
            )
            detail["absenteeisms"] = [
                {
                    "id": a["id"],
                    "warning_number": int(a["warning_number"]),
                    "created_at": isoformat(a["created_at"]),
                    "viewed_by_parent": bool(a["viewed_by_parent"]),
                }
                for a in fetchall(cur)
            ]
            return detail

    def create(
        self,
        *,
        school_number: str,
        full_name: str,
        class_name: str,
        parents: Sequence[ParentLink] = (),
    ) -> str:
        student_id = new_id()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO students (id, school_number, full_name, class_name, status)
                VALUES (%s, %s, %s, %s, %s)
                """,
                (student_id, school_number, full_name, class_name, StudentStatus.ACTIVE.value),
            )
            if parents:
                upsert_parent_links(
                    cur,
                    [
                        ParentLink(
                            student_id=student_id,
                            full_name=p.full_name,
                            phone=p.phone,
                            password_hash=p.password_hash,
                        )
                        for p in parents
                    ],
                )
        return student_id

    def update(
        self,
        student_id: str,
        *,
        full_name: Optional[str] = None,
        class_name: Optional[str] = None,
        status: Optional[StudentStatus] = None,
    ) -> None:
        sets: list[str] = []
        params: list[Any] = []
        if full_name is not None:
            sets.append("full_name=%s")
            params.append(full_name)
        if class_name is not None:
            sets.append("class_name=%s")
            params.append(class_name)
        if status is not None:
            sets.append("status=%s")
            params.append(status.value)
        if not sets:
            return
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE students SET {', '.join(sets)} WHERE id=%s", (*params, student_id))

    def delete(self, student_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM students WHERE id=%s", (student_id,))
            return cur.rowcount > 0

    def delete_many(self, student_ids: Sequence[str]) -> int:
        ids = list(dict.fromkeys(student_ids))
        if not ids:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"DELETE FROM students WHERE id IN ({in_clause(ids)})", tuple(ids))
            return int(cur.rowcount)

    def list_parents(self, student_id: str) -> Sequence[Parent]:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._parents_for(cur, [student_id]).get(student_id, [])

    def link_parent(self, student_id: str, parent_id: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT IGNORE INTO student_parents (student_id, parent_id) VALUES (%s, %s)",
                (student_id, parent_id),
            )

    def unlink_parent(self, student_id: str, parent_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM student_parents WHERE student_id=%s AND parent_id=%s",
                (student_id, parent_id),
            )
            return cur.rowcount > 0
