from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Optional

from ..common.pagination import Page
from ..common.validators import optional_str, require_int_between, require_min_length
from ..core.constants import (
    ALLOWED_UPLOAD_MIMETYPES,
    DOWNLOAD_BASENAME,
    FILE_MIMETYPES,
    MAX_WARNING_NUMBER,
    MIN_PHONE_LENGTH,
    MIN_WARNING_NUMBER,
)
from ..core.exceptions import NotFoundError, ValidationError
from ..notifications.qr import render_qr_png
from ..notifications.whatsapp import build_parent_link, build_whatsapp_link
from ..otp.service import OtpService
from ..students.repository import StudentRepository
from .repository import AbsenteeismRepository
from .storage import LetterStorage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LetterUpload:
    stream: Optional[BinaryIO]
    filename: str
    mimetype: str


@dataclass(frozen=True)
class LetterFile:
    path: Path
    mimetype: str
    download_name: str


def letter_file(path: Path) -> LetterFile:
    ext = path.suffix.lstrip(".").lower()
    return LetterFile(
        path=path,
        mimetype=FILE_MIMETYPES.get(ext, "application/octet-stream"),
        download_name=f"{DOWNLOAD_BASENAME}.{ext}" if ext else DOWNLOAD_BASENAME,
    )


class AbsenteeismService:
    """Use cases: absence letters, their OTP links and the stored files (admin)."""

    def __init__(
        self,
        records: AbsenteeismRepository,
        students: StudentRepository,
        otps: OtpService,
        storage: LetterStorage,
        *,
        frontend_domain: str = "",
    ):
        self._records = records
        self._students = students
        self._otps = otps
        self._storage = storage
        self._domain = frontend_domain

    def _require_record(self, absenteeism_id: str):
        record = self._records.get_by_id(absenteeism_id)
        if not record:
            raise NotFoundError("Absenteeism record not found.")
        return record

    def stats(self) -> dict:
        return self._records.stats().to_dict()

    def list_records(self, *, page: Page, student_id: Optional[str] = None) -> dict:
        student_id = optional_str(student_id)
        return {
            "absenteeisms": list(self._records.list_page(student_id=student_id, offset=page.offset, limit=page.limit)),
            "pagination": page.meta(self._records.count(student_id=student_id)),
        }

    def get_record(self, absenteeism_id: str) -> dict:
        record = self._records.get_with_student(absenteeism_id)
        if not record:
            raise NotFoundError("Absenteeism record not found.")
        record["otp_codes"] = self._otps.history(absenteeism_id)
        return record

    def warning_count(self, student_id: str) -> dict:
        count = self._records.count(student_id=student_id)
        return {"count": count, "next_warning": count + 1}

    def create_record(self, *, student_id: Optional[str], warning_number: Any, upload: Optional[LetterUpload]) -> dict:
        if upload is None or upload.stream is None or not upload.filename:
            raise ValidationError("A letter file is required.")
        if upload.mimetype not in ALLOWED_UPLOAD_MIMETYPES:
            raise ValidationError("Only PDF, JPEG and PNG files can be uploaded.")
        if not optional_str(student_id):
            raise ValidationError("Student ID is required.")
        number = require_int_between(
            warning_number, "Warning number", MIN_WARNING_NUMBER, MAX_WARNING_NUMBER, default=MIN_WARNING_NUMBER
        )
        if not self._students.get_by_id(str(student_id)):
            raise NotFoundError("Student not found.")

        file_path = self._storage.save(upload.stream, upload.filename)
        try:
            absenteeism_id = self._records.create(student_id=str(student_id), warning_number=number, file_path=file_path)
        except Exception:
            self._storage.delete(file_path)
            raise
        logger.info("Created absenteeism %s (warning %d) for student %s", absenteeism_id, number, student_id)
        return self.get_record(absenteeism_id)

    def generate_otp_and_link(self, absenteeism_id: str, parent_phone: Optional[str], parent_name: str = "") -> dict:
        phone = require_min_length((parent_phone or "").strip(), "Parent phone", MIN_PHONE_LENGTH)
        record = self._records.get_with_student(absenteeism_id)
        if not record:
            raise NotFoundError("Absenteeism record not found.")

        issued = self._otps.create(absenteeism_id, phone)
        link = build_whatsapp_link(
            phone,
            self._domain,
            issued.code,
            (parent_name or "").strip(),
            issued.token,
            valid_minutes=self._otps.expiry_minutes,
        )
        return {
            "otp": {"code": issued.code, "expires_at": issued.expires_at.isoformat()},
            "token": issued.token,
            "whatsapp_link": link,
            "student_name": record["student"]["full_name"],
        }

    def link_qr_png(self, absenteeism_id: str, token: str) -> bytes:
        self._require_record(absenteeism_id)
        if not self._otps.token_belongs_to(absenteeism_id, token):
            raise NotFoundError("Link not found for this record.")
        return render_qr_png(build_parent_link(self._domain, token))

    def delete_record(self, absenteeism_id: str) -> dict:
        record = self._require_record(absenteeism_id)
        self._records.delete(absenteeism_id)
        self._storage.delete(record.file_path)
        logger.info("Deleted absenteeism %s", absenteeism_id)
        return {"message": "Absenteeism record deleted successfully."}

    def resolve_letter(self, absenteeism_id: str) -> LetterFile:
        record = self._require_record(absenteeism_id)
        return letter_file(self._storage.resolve(record.file_path))
