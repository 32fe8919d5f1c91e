from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import OtpCode


class OtpRepository(Protocol):
    def get_by_token(self, token: str) -> Optional[OtpCode]:
        raise NotImplementedError

    def create_superseding(
        self,
        *,
        absenteeism_id: str,
        parent_phone: str,
        code_hash: str,
        token: str,
        expires_at: datetime,
    ) -> str:
        """Mark unused codes of the same record + phone as used, then insert the new one (one transaction)."""

        raise NotImplementedError

    def register_failed_attempt(self, otp_id: str, *, max_attempts: int) -> bool:
        """Increment the attempt counter unless it already reached ``max_attempts``.

        Returns False when the counter was already exhausted.
        """

        raise NotImplementedError

    def mark_verified(self, otp_id: str, *, verified_at: datetime) -> None:
        raise NotImplementedError

    def list_for_absenteeism(self, absenteeism_id: str) -> Sequence[OtpCode]:
        raise NotImplementedError
