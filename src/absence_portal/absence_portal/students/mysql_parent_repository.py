from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, new_id
from .model import LinkOutcome, Parent, ParentLink
from .repository import ParentRepository


def to_parent(row: Dict[str, Any]) -> Parent:
    return Parent(
        parent_id=row["id"],
        user_id=row["user_id"],
        full_name=row["full_name"],
        phone=row["phone"],
    )


def upsert_parent_links(cur, links: Sequence[ParentLink]) -> LinkOutcome:
    """Find-or-create parents by phone on an open cursor and link them to students.

    A new parent gets a PARENT user whose username is the phone. When such a
    user already exists (e.g. the parent's phone was edited later) it is reused.
    """
    created = 0
    updated = 0
    for link in links:
        cur.execute("SELECT id FROM parents WHERE phone=%s ORDER BY created_at LIMIT 1", (link.phone,))
        row = fetchone(cur)
        parent_id: Optional[str] = row["id"] if row else None
        user_row = None

        if parent_id is None:
            cur.execute(
                """
                SELECT u.id AS user_id, p.id AS parent_id
                FROM users u
                LEFT JOIN parents p ON p.user_id = u.id
                WHERE u.username=%s
                """,
                (link.phone,),
            )
            user_row = fetchone(cur)
            if user_row and user_row.get("parent_id"):
                parent_id = user_row["parent_id"]

        if parent_id is not None:
            cur.execute(
                "UPDATE parents SET full_name=%s, phone=%s WHERE id=%s",
                (link.full_name, link.phone, parent_id),
            )
            updated += 1
        else:
            if user_row:
                user_id = user_row["user_id"]
            else:
                if not link.password_hash:
                    raise ValueError(f"Missing password hash for new parent {link.phone}")
                user_id = new_id()
                cur.execute(
                    "INSERT INTO users (id, username, password_hash, role) VALUES (%s, %s, %s, %s)",
                    (user_id, link.phone, link.password_hash, Role.PARENT.value),
                )
            parent_id = new_id()
            cur.execute(
                "INSERT INTO parents (id, user_id, full_name, phone) VALUES (%s, %s, %s, %s)",
                (parent_id, user_id, link.full_name, link.phone),
            )
            created += 1

        cur.execute(
            "INSERT IGNORE INTO student_parents (student_id, parent_id) VALUES (%s, %s)",
            (link.student_id, parent_id),
        )
    return LinkOutcome(created=created, updated=updated)


class MySQLParentRepository(ParentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, parent_id: str) -> Optional[Parent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, user_id, full_name, phone FROM parents WHERE id=%s", (parent_id,))
            row = fetchone(cur)
            return to_parent(row) if row else None

    def map_by_phones(self, phones: Sequence[str]) -> Dict[str, Parent]:
        phones = list(dict.fromkeys(p for p in phones if p))
        if not phones:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT id, user_id, full_name, phone FROM parents WHERE phone IN ({in_clause(phones)})",
                tuple(phones),
            )
            return {r["phone"]: to_parent(r) for r in fetchall(cur)}

    def update(self, parent_id: str, *, full_name: Optional[str] = None, phone: Optional[str] = None) -> None:
        sets: list[str] = []
        params: list[Any] = []
        if full_name is not None:
            sets.append("full_name=%s")
            params.append(full_name)
        if phone is not None:
            sets.append("phone=%s")
            params.append(phone)
        if not sets:
            return
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE parents SET {', '.join(sets)} WHERE id=%s", (*params, parent_id))

    def save_links(self, links: Sequence[ParentLink]) -> LinkOutcome:
        if not links:
            return LinkOutcome()
        with db_cursor(self._conn_factory) as (_, cur):
            return upsert_parent_links(cur, links)
