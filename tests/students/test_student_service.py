from __future__ import annotations

import pytest
from werkzeug.security import check_password_hash

from src.absence_portal.absence_portal.common.pagination import Page
from src.absence_portal.absence_portal.core.enums import Role, StudentStatus
from src.absence_portal.absence_portal.core.exceptions import ConflictError, NotFoundError, ValidationError
from src.absence_portal.absence_portal.students.service import NewParent, parent_initial_password


def test_parent_initial_password_is_last_six_chars():
    assert parent_initial_password("05321234567") == "234567"


def test_create_student_creates_parent_users(container, repos):
    detail = container.student_service.create_student(
        school_number="1001",
        full_name="Ayse Yilmaz",
        class_name="9-A",
        parents=[NewParent(full_name="Fatma Yilmaz", phone="05321234567"), NewParent(full_name="", phone="")],
    )

    assert detail["school_number"] == "1001"
    assert [p["phone"] for p in detail["parents"]] == ["05321234567"]

    user = repos.users.get_by_username("05321234567")
    assert user.role == Role.PARENT
    assert check_password_hash(user.password_hash, "234567")


def test_create_student_rejects_duplicate_school_number(container):
    container.student_service.create_student(school_number="1001", full_name="A", class_name="9-A")

    with pytest.raises(ConflictError):
        container.student_service.create_student(school_number="1001", full_name="B", class_name="9-B")


def test_create_student_requires_fields(container):
    with pytest.raises(ValidationError, match="Class is required."):
        container.student_service.create_student(school_number="1", full_name="A", class_name="  ")


def test_existing_phone_reuses_parent(container, repos):
    svc = container.student_service
    svc.create_student(school_number="1", full_name="A", class_name="9-A", parents=[NewParent("Veli", "05320000001")])
    svc.create_student(school_number="2", full_name="B", class_name="9-A", parents=[NewParent("Veli", "05320000001")])

    assert len(repos.parents.parents) == 1
    assert len(repos.parents.links) == 2


def test_list_students_paginates_and_searches(container, repos):
    for n in range(5):
        repos.students.add(str(100 + n), f"Student {n}", "10-B")
    repos.students.add("900", "Zeynep Kaya", "11-C")

    result = container.student_service.list_students(page=Page.from_args("2", "2"), search=None)
    assert result["pagination"] == {"page": 2, "limit": 2, "total": 6, "total_pages": 3}
    assert [s["school_number"] for s in result["students"]] == ["102", "103"]

    found = container.student_service.list_students(page=Page.from_args(None, None), search="zeynep")
    assert [s["school_number"] for s in found["students"]] == ["900"]


def test_update_student_validates_status(container, repos):
    student = repos.students.add("1", "A", "9-A")

    with pytest.raises(ValidationError, match="ACTIVE or INACTIVE"):
        container.student_service.update_student(student.student_id, status="graduated")

    container.student_service.update_student(student.student_id, status="inactive", class_name="10-A")
    updated = repos.students.get_by_id(student.student_id)
    assert updated.status == StudentStatus.INACTIVE
    assert updated.class_name == "10-A"


def test_missing_student_is_not_found(container):
    with pytest.raises(NotFoundError):
        container.student_service.get_student("nope")
    with pytest.raises(NotFoundError):
        container.student_service.delete_student("nope")


def test_bulk_delete_requires_ids(container, repos):
    a = repos.students.add("1", "A", "9-A")
    b = repos.students.add("2", "B", "9-A")

    with pytest.raises(ValidationError):
        container.student_service.bulk_delete([])

    result = container.student_service.bulk_delete([a.student_id, b.student_id, "missing"])
    assert result["deleted_count"] == 2


def test_assign_update_and_remove_parent(container, repos):
    svc = container.student_service
    first = svc.create_student(school_number="1", full_name="A", class_name="9-A", parents=[NewParent("Veli", "05320000001")])
    other = repos.students.add("2", "B", "9-A")
    parent_id = first["parents"][0]["id"]

    detail = svc.assign_parent(other.student_id, parent_id)
    assert [p["id"] for p in detail["parents"]] == [parent_id]

    assert svc.update_parent(parent_id, full_name="Yeni Ad")["full_name"] == "Yeni Ad"

    svc.remove_parent(other.student_id, parent_id)
    with pytest.raises(ValidationError, match="not linked"):
        svc.remove_parent(other.student_id, parent_id)
    with pytest.raises(NotFoundError):
        svc.assign_parent(other.student_id, "missing-parent")
