from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class OtpCode:
    """A one-time code issued for one absenteeism record and one parent phone.

    Only the bcrypt hash of the code is stored. ``is_used`` marks a code that
    was superseded by a newer one for the same record and phone.
    """

    otp_id: str
    absenteeism_id: str
    parent_phone: str
    code_hash: str
    token: str
    expires_at: datetime
    is_used: bool = False
    attempt_count: int = 0
    verified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def is_active(self, now: datetime) -> bool:
        return not self.is_used and not self.is_expired(now)

    def remaining_attempts(self, max_attempts: int) -> int:
        return max(int(max_attempts) - self.attempt_count, 0)


@dataclass(frozen=True)
class IssuedOtp:
    """Result of issuing a code. ``code`` is the only place the plaintext exists."""

    code: str
    expires_at: datetime
    parent_phone: str
    token: str
