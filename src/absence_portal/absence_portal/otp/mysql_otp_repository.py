from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, new_id
from .model import OtpCode
from .repository import OtpRepository

_COLUMNS = (
    "id, absenteeism_id, parent_phone, code_hash, token, expires_at, "
    "is_used, attempt_count, verified_at, created_at"
)


def _to_otp(row: Dict[str, Any]) -> OtpCode:
    return OtpCode(
        otp_id=row["id"],
        absenteeism_id=row["absenteeism_id"],
        parent_phone=row["parent_phone"],
        code_hash=row["code_hash"],
        token=row["token"],
        expires_at=row["expires_at"],
        is_used=bool(row["is_used"]),
        attempt_count=int(row["attempt_count"] or 0),
        verified_at=row.get("verified_at"),
        created_at=row.get("created_at"),
    )


class MySQLOtpRepository(OtpRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_token(self, token: str) -> Optional[OtpCode]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM otp_codes WHERE token=%s", (token,))
            row = fetchone(cur)
            return _to_otp(row) if row else None

    def create_superseding(
        self,
        *,
        absenteeism_id: str,
        parent_phone: str,
        code_hash: str,
        token: str,
        expires_at: datetime,
    ) -> str:
        otp_id = new_id()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE otp_codes SET is_used=1
                WHERE absenteeism_id=%s AND parent_phone=%s AND is_used=0
                """,
                (absenteeism_id, parent_phone),
            )
            cur.execute(
                """
                INSERT INTO otp_codes (id, absenteeism_id, parent_phone, code_hash, token, expires_at)
                VALUES (%s, %s, %s, %s, %s, %s)
                """,
                (otp_id, absenteeism_id, parent_phone, code_hash, token, expires_at),
            )
        return otp_id

    def register_failed_attempt(self, otp_id: str, *, max_attempts: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE otp_codes SET attempt_count = attempt_count + 1 WHERE id=%s AND attempt_count < %s",
                (otp_id, int(max_attempts)),
            )
            return cur.rowcount > 0

    def mark_verified(self, otp_id: str, *, verified_at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE otp_codes SET verified_at=%s WHERE id=%s AND verified_at IS NULL",
                (verified_at, otp_id),
            )

    def list_for_absenteeism(self, absenteeism_id: str) -> Sequence[OtpCode]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM otp_codes WHERE absenteeism_id=%s ORDER BY created_at DESC",
                (absenteeism_id,),
            )
            return [_to_otp(r) for r in fetchall(cur)]
