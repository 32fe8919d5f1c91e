from __future__ import annotations

import io
import re
from datetime import timedelta

import pytest

from src.absence_portal.absence_portal.absenteeism.service import LetterUpload, letter_file
from src.absence_portal.absence_portal.absenteeism.storage import LetterStorage
from src.absence_portal.absence_portal.common.pagination import Page
from src.absence_portal.absence_portal.core.exceptions import NotFoundError, ValidationError


def pdf_upload(name: str = "mektup.pdf", mimetype: str = "application/pdf") -> LetterUpload:
    return LetterUpload(stream=io.BytesIO(b"%PDF-1.4 letter"), filename=name, mimetype=mimetype)


@pytest.fixture
def student(repos):
    return repos.students.add("1001", "Ayse Yilmaz", "9-A")


def stored_files(container) -> list[str]:
    root = container.letter_storage.root
    return sorted(p.name for p in root.iterdir()) if root.exists() else []


def test_create_record_stores_file_under_generated_name(container, repos, student):
    detail = container.absenteeism_service.create_record(
        student_id=student.student_id, warning_number="3", upload=pdf_upload()
    )

    record = repos.absenteeisms.get_by_id(detail["id"])
    assert record.warning_number == 3
    assert re.fullmatch(r"absenteeism-\d+-[0-9a-f]{32}\.pdf", record.file_path)
    assert (container.letter_storage.root / record.file_path).read_bytes() == b"%PDF-1.4 letter"
    assert detail["otp_codes"] == []


@pytest.mark.parametrize("value", [None, "", "abc", "0"])
def test_warning_number_defaults_to_one(container, repos, student, value):
    detail = container.absenteeism_service.create_record(
        student_id=student.student_id, warning_number=value, upload=pdf_upload()
    )

    assert repos.absenteeisms.get_by_id(detail["id"]).warning_number == 1


@pytest.mark.parametrize("value", ["-1", "11"])
def test_warning_number_out_of_range(container, student, value):
    with pytest.raises(ValidationError, match="between 1 and 10"):
        container.absenteeism_service.create_record(student_id=student.student_id, warning_number=value, upload=pdf_upload())


def test_upload_is_required_and_typed(container, student):
    svc = container.absenteeism_service

    with pytest.raises(ValidationError, match="file is required"):
        svc.create_record(student_id=student.student_id, warning_number=1, upload=None)
    with pytest.raises(ValidationError, match="PDF, JPEG and PNG"):
        svc.create_record(student_id=student.student_id, warning_number=1, upload=pdf_upload("x.docx", "application/msword"))
    assert stored_files(container) == []


def test_unknown_student_stores_nothing(container):
    with pytest.raises(NotFoundError, match="Student not found."):
        container.absenteeism_service.create_record(student_id="missing", warning_number=1, upload=pdf_upload())
    assert stored_files(container) == []


def test_warning_count_and_stats(container, repos, student):
    repos.absenteeisms.add(student.student_id)
    second = repos.absenteeisms.add(student.student_id, warning_number=2)
    repos.absenteeisms.mark_viewed(second.absenteeism_id)

    assert container.absenteeism_service.warning_count(student.student_id) == {"count": 2, "next_warning": 3}
    assert container.absenteeism_service.stats() == {"total": 2, "viewed_count": 1, "pending_count": 1}

    listed = container.absenteeism_service.list_records(page=Page.from_args(1, 1), student_id=student.student_id)
    assert listed["pagination"]["total_pages"] == 2


def test_generate_otp_and_link(container, repos, student, clock):
    record = repos.absenteeisms.add(student.student_id)

    result = container.absenteeism_service.generate_otp_and_link(record.absenteeism_id, "0532 123 45 67", "Fatma Yilmaz")

    assert result["student_name"] == "Ayse Yilmaz"
    assert re.fullmatch(r"\d{4}", result["otp"]["code"])
    assert result["whatsapp_link"].startswith("https://wa.me/05321234567?text=")
    assert f"okul.example.com%2Fveli%2F{result['token']}" in result["whatsapp_link"]

    history = container.absenteeism_service.get_record(record.absenteeism_id)["otp_codes"]
    assert [h["token"] for h in history] == [result["token"]]
    assert "code_hash" not in history[0]
    assert history[0]["created_at"] == clock.now.isoformat()
    assert history[0]["expires_at"] == (clock.now + timedelta(minutes=1440)).isoformat()


def test_generate_otp_validates_phone_and_record(container, repos, student):
    record = repos.absenteeisms.add(student.student_id)

    with pytest.raises(ValidationError, match="at least 10"):
        container.absenteeism_service.generate_otp_and_link(record.absenteeism_id, "0532")
    with pytest.raises(NotFoundError):
        container.absenteeism_service.generate_otp_and_link("missing", "05321234567")


def test_link_qr_only_for_own_tokens(container, repos, student):
    record = repos.absenteeisms.add(student.student_id)
    other = repos.absenteeisms.add(student.student_id)
    issued = container.otp_service.create(record.absenteeism_id, "05321234567")

    assert container.absenteeism_service.link_qr_png(record.absenteeism_id, issued.token).startswith(b"\x89PNG")
    with pytest.raises(NotFoundError):
        container.absenteeism_service.link_qr_png(other.absenteeism_id, issued.token)


def test_delete_removes_row_file_and_otps(container, repos, student):
    detail = container.absenteeism_service.create_record(student_id=student.student_id, warning_number=1, upload=pdf_upload())
    container.otp_service.create(detail["id"], "05321234567")

    container.absenteeism_service.delete_record(detail["id"])

    assert repos.absenteeisms.get_by_id(detail["id"]) is None
    assert repos.otps.codes == {}
    assert stored_files(container) == []
    with pytest.raises(NotFoundError):
        container.absenteeism_service.delete_record(detail["id"])


def test_delete_tolerates_missing_file(container, repos, student):
    record = repos.absenteeisms.add(student.student_id, file_path="already-gone.pdf")

    container.absenteeism_service.delete_record(record.absenteeism_id)

    assert repos.absenteeisms.get_by_id(record.absenteeism_id) is None


def test_resolve_letter_missing_file_is_not_found(container, repos, student):
    record = repos.absenteeisms.add(student.student_id, file_path="nowhere.pdf")

    with pytest.raises(NotFoundError, match="File not found."):
        container.absenteeism_service.resolve_letter(record.absenteeism_id)


def test_storage_keeps_paths_inside_upload_dir(tmp_path):
    storage = LetterStorage(tmp_path / "uploads")
    (tmp_path / "secret.txt").write_text("x")

    with pytest.raises(NotFoundError):
        storage.resolve("../secret.txt")
    storage.delete("../secret.txt")
    assert (tmp_path / "secret.txt").exists()


@pytest.mark.parametrize(
    "name,mimetype,download",
    [
        ("a.pdf", "application/pdf", "devamsizlik-mektubu.pdf"),
        ("a.JPG", "image/jpeg", "devamsizlik-mektubu.jpg"),
        ("a.png", "image/png", "devamsizlik-mektubu.png"),
        ("a.bin", "application/octet-stream", "devamsizlik-mektubu.bin"),
    ],
)
def test_letter_file_mimetype_by_extension(tmp_path, name, mimetype, download):
    letter = letter_file(tmp_path / name)

    assert (letter.mimetype, letter.download_name) == (mimetype, download)
