from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional

import bcrypt

from ..absenteeism.repository import AbsenteeismRepository
from ..common.datetime_utils import now_utc
from ..core.constants import OTP_BCRYPT_ROUNDS, OTP_CODE_LENGTH, OTP_TOKEN_BYTES, OTP_TOKEN_RETRIES
from ..core.exceptions import (
    AuthenticationError,
    ExpiredLinkError,
    NotFoundError,
    TooManyAttemptsError,
    ValidationError,
)
from .model import IssuedOtp, OtpCode
from .repository import OtpRepository

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def generate_code() -> str:
    """Four digit code in 1000..9999."""
    return str(secrets.randbelow(9000) + 1000)


def hash_code(code: str, *, rounds: int = OTP_BCRYPT_ROUNDS) -> str:
    return bcrypt.hashpw(code.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def check_code(code: str, code_hash: str) -> bool:
    try:
        return bcrypt.checkpw(code.encode("utf-8"), code_hash.encode("utf-8"))
    except ValueError:
        return False


class OtpService:
    """Use cases: issue one-time codes for a letter and verify them through the parent link."""

    def __init__(
        self,
        otps: OtpRepository,
        absenteeisms: AbsenteeismRepository,
        *,
        expiry_minutes: int = 1440,
        max_attempts: int = 3,
        bcrypt_rounds: int = OTP_BCRYPT_ROUNDS,
        clock: Clock = now_utc,
    ):
        self._otps = otps
        self._absenteeisms = absenteeisms
        self._expiry = timedelta(minutes=int(expiry_minutes))
        self._max_attempts = int(max_attempts)
        self._rounds = int(bcrypt_rounds)
        self._clock = clock

    @property
    def expiry_minutes(self) -> int:
        return int(self._expiry.total_seconds() // 60)

    def _new_token(self) -> str:
        for _ in range(OTP_TOKEN_RETRIES):
            token = secrets.token_hex(OTP_TOKEN_BYTES)
            if self._otps.get_by_token(token) is None:
                return token
        raise RuntimeError("Could not allocate a unique link token.")

    def create(self, absenteeism_id: str, parent_phone: str) -> IssuedOtp:
        if not self._absenteeisms.get_by_id(absenteeism_id):
            raise NotFoundError("Absenteeism record not found.")

        code = generate_code()
        token = self._new_token()
        expires_at = self._clock() + self._expiry
        self._otps.create_superseding(
            absenteeism_id=absenteeism_id,
            parent_phone=parent_phone,
            code_hash=hash_code(code, rounds=self._rounds),
            token=token,
            expires_at=expires_at,
        )
        logger.info("Issued OTP link %s for absenteeism %s", token, absenteeism_id)
        return IssuedOtp(code=code, expires_at=expires_at, parent_phone=parent_phone, token=token)

    def _active(self, token: str) -> OtpCode:
        otp = self._otps.get_by_token(token)
        if not otp or not otp.is_active(self._clock()):
            raise ExpiredLinkError("This link has expired.")
        return otp

    def verify_by_token(self, token: Optional[str], code: Optional[str]) -> dict:
        token = (token or "").strip()
        code = (code or "").strip()
        if not token:
            raise ValidationError("Link token is required.")
        if len(code) != OTP_CODE_LENGTH:
            raise ValidationError(f"The code must be {OTP_CODE_LENGTH} digits.")

        otp = self._active(token)
        if otp.attempt_count >= self._max_attempts:
            raise TooManyAttemptsError("Too many failed attempts. Please ask the school for a new link.")

        if not check_code(code, otp.code_hash):
            if not self._otps.register_failed_attempt(otp.otp_id, max_attempts=self._max_attempts):
                raise TooManyAttemptsError("Too many failed attempts. Please ask the school for a new link.")
            left = max(self._max_attempts - otp.attempt_count - 1, 0)
            logger.warning("Failed OTP verification for link %s (%d attempts left)", token, left)
            raise AuthenticationError(f"Invalid code. {left} attempts left.")

        self._otps.mark_verified(otp.otp_id, verified_at=self._clock())
        self._absenteeisms.mark_viewed(otp.absenteeism_id)

        record = self._absenteeisms.get_with_student(otp.absenteeism_id)
        if not record:
            raise NotFoundError("Absenteeism record not found.")
        student = record["student"]
        return {
            "absenteeism": {
                "id": record["id"],
                "warning_number": record["warning_number"],
                "created_at": record["created_at"],
                "student": {
                    "full_name": student["full_name"],
                    "class_name": student["class_name"],
                    "school_number": student["school_number"],
                },
            }
        }

    def info_by_token(self, token: str) -> dict:
        otp = self._otps.get_by_token((token or "").strip())
        if not otp:
            raise NotFoundError("Invalid link.")
        record = self._absenteeisms.get_with_student(otp.absenteeism_id) or {}
        student = record.get("student") or {}
        return {
            "is_expired": otp.is_expired(self._clock()),
            "is_used": otp.is_used,
            "student_name": student.get("full_name", ""),
            "class_name": student.get("class_name", ""),
            "remaining_attempts": otp.remaining_attempts(self._max_attempts),
        }

    def authorize_file_access(self, absenteeism_id: str, token: Optional[str]) -> bool:
        """A link token opens the letter only after its code was verified."""
        if not token:
            return False
        otp = self._otps.get_by_token(token)
        if not otp or otp.absenteeism_id != absenteeism_id:
            return False
        return otp.is_active(self._clock()) and otp.verified_at is not None

    def history(self, absenteeism_id: str) -> list[dict]:
        now = self._clock()
        return [
            {
                "id": o.otp_id,
                "parent_phone": o.parent_phone,
                "token": o.token,
                "expires_at": o.expires_at.isoformat(),
                "is_used": o.is_used,
                "is_expired": o.is_expired(now),
                "attempt_count": o.attempt_count,
                "verified_at": o.verified_at.isoformat() if o.verified_at else None,
                "created_at": o.created_at.isoformat() if o.created_at else None,
            }
            for o in self._otps.list_for_absenteeism(absenteeism_id)
        ]

    def token_belongs_to(self, absenteeism_id: str, token: str) -> bool:
        otp = self._otps.get_by_token(token)
        return bool(otp and otp.absenteeism_id == absenteeism_id)
