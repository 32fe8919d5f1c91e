from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..common.datetime_utils import isoformat
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, new_id
from .model import AbsenteeismRecord, AbsenteeismStats
from .repository import AbsenteeismRepository


def _to_record(row: Dict[str, Any]) -> AbsenteeismRecord:
    return AbsenteeismRecord(
        absenteeism_id=row["id"],
        student_id=row["student_id"],
        warning_number=int(row["warning_number"]),
        file_path=row["file_path"],
        viewed_by_parent=bool(row["viewed_by_parent"]),
        created_at=row.get("created_at"),
    )


def _record_row(row: Dict[str, Any]) -> dict:
    return {
        "id": row["id"],
        "student_id": row["student_id"],
        "warning_number": int(row["warning_number"]),
        "viewed_by_parent": bool(row["viewed_by_parent"]),
        "created_at": isoformat(row.get("created_at")),
    }


class MySQLAbsenteeismRepository(AbsenteeismRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_page(self, *, student_id: Optional[str], offset: int, limit: int) -> Sequence[dict]:
        where = "WHERE a.student_id=%s" if student_id else ""
        params: tuple = (student_id,) if student_id else ()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT a.id, a.student_id, a.warning_number, a.viewed_by_parent, a.created_at,
                       s.full_name, s.class_name, s.school_number,
                       (SELECT COUNT(*) FROM otp_codes o WHERE o.absenteeism_id = a.id) AS otp_count
                FROM absenteeisms a
                JOIN students s ON s.id = a.student_id
                {where}
                ORDER BY s.class_name ASC, s.school_number ASC, a.created_at DESC
                LIMIT %s OFFSET %s
                """,
                (*params, int(limit), int(offset)),
            )
            out: list[dict] = []
            for r in fetchall(cur):
                item = _record_row(r)
                item["student"] = {
                    "full_name": r["full_name"],
                    "class_name": r["class_name"],
                    "school_number": r["school_number"],
                }
                item["otp_count"] = int(r["otp_count"] or 0)
                out.append(item)
            return out

    def count(self, *, student_id: Optional[str] = None) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            if student_id:
                cur.execute("SELECT COUNT(*) AS total FROM absenteeisms WHERE student_id=%s", (student_id,))
            else:
                cur.execute("SELECT COUNT(*) AS total FROM absenteeisms")
            row = fetchone(cur)
            return int(row["total"]) if row else 0

    def stats(self) -> AbsenteeismStats:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS total,
                       COALESCE(SUM(viewed_by_parent = 1), 0) AS viewed_count,
                       COALESCE(SUM(viewed_by_parent = 0), 0) AS pending_count
                FROM absenteeisms
                """
            )
            row = fetchone(cur) or {}
            return AbsenteeismStats(
                total=int(row.get("total") or 0),
                viewed_count=int(row.get("viewed_count") or 0),
                pending_count=int(row.get("pending_count") or 0),
            )

    def get_by_id(self, absenteeism_id: str) -> Optional[AbsenteeismRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, student_id, warning_number, file_path, viewed_by_parent, created_at
                FROM absenteeisms
                WHERE id=%s
                """,
                (absenteeism_id,),
            )
            row = fetchone(cur)
            return _to_record(row) if row else None

    def get_with_student(self, absenteeism_id: str) -> Optional[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT a.id, a.student_id, a.warning_number, a.viewed_by_parent, a.created_at,
                       s.full_name, s.class_name, s.school_number
                FROM absenteeisms a
                JOIN students s ON s.id = a.student_id
                WHERE a.id=%s
                """,
                (absenteeism_id,),
            )
            row = fetchone(cur)
            if not row:
                return None

            cur.execute(
                """
                SELECT p.id, p.full_name, p.phone
                FROM student_parents sp
                JOIN parents p ON p.id = sp.parent_id
                WHERE sp.student_id=%s
                ORDER BY p.created_at
                """,
                (row["student_id"],),
            )
            parents = [{"id": p["id"], "full_name": p["full_name"], "phone": p["phone"]} for p in fetchall(cur)]

            out = _record_row(row)
            out["student"] = {
                "full_name": row["full_name"],
                "class_name": row["class_name"],
                "school_number": row["school_number"],
                "parents": parents,
            }
            return out

    def create(self, *, student_id: str, warning_number: int, file_path: str) -> str:
        absenteeism_id = new_id()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO absenteeisms (id, student_id, warning_number, file_path, viewed_by_parent)
                VALUES (%s, %s, %s, %s, 0)
                """,
                (absenteeism_id, student_id, int(warning_number), file_path),
            )
        return absenteeism_id

    def mark_viewed(self, absenteeism_id: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE absenteeisms SET viewed_by_parent=1 WHERE id=%s", (absenteeism_id,))

    def delete(self, absenteeism_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM absenteeisms WHERE id=%s", (absenteeism_id,))
            return cur.rowcount > 0
