from __future__ import annotations

from flask import Flask, request

from ..common.http import auth_decorators, json_body, ok
from ..common.pagination import Page
from ..container import Container
from ..core.enums import ImportMode
from ..core.exceptions import ValidationError
from .excel_import import parse_parent_sheet, parse_student_sheet
from .service import NewParent

EXCEL_MIMETYPES = {
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/octet-stream",
}


def _uploaded_spreadsheet() -> bytes:
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        raise ValidationError("An Excel file is required.")
    name = upload.filename.lower()
    if upload.mimetype not in EXCEL_MIMETYPES and not name.endswith(".xlsx"):
        raise ValidationError("Only Excel (.xlsx) files can be uploaded.")
    return upload.read()


def register(app: Flask, container: Container) -> None:
    _, admin_required = auth_decorators(container.token_service)
    students = container.student_service
    importer = container.student_import_service

    @app.route("/api/students", methods=["GET"], endpoint="students_list")
    @admin_required
    def list_students():
        page = Page.from_args(request.args.get("page"), request.args.get("limit"))
        return ok(students.list_students(page=page, search=request.args.get("search")))

    @app.route("/api/students/<student_id>", methods=["GET"], endpoint="students_get")
    @admin_required
    def get_student(student_id: str):
        return ok(students.get_student(student_id))

    @app.route("/api/students", methods=["POST"], endpoint="students_create")
    @admin_required
    def create_student():
        body = json_body()
        parents = [
            NewParent(full_name=str(p.get("full_name") or ""), phone=str(p.get("phone") or ""))
            for p in (body.get("parents") or [])
            if isinstance(p, dict)
        ]
        result = students.create_student(
            school_number=str(body.get("school_number") or ""),
            full_name=str(body.get("full_name") or ""),
            class_name=str(body.get("class_name") or ""),
            parents=parents,
        )
        return ok(result, 201)

    @app.route("/api/students/<student_id>", methods=["PUT"], endpoint="students_update")
    @admin_required
    def update_student(student_id: str):
        body = json_body()
        result = students.update_student(
            student_id,
            full_name=body.get("full_name"),
            class_name=body.get("class_name"),
            status=body.get("status"),
        )
        return ok(result)

    @app.route("/api/students/<student_id>", methods=["DELETE"], endpoint="students_delete")
    @admin_required
    def delete_student(student_id: str):
        return ok(students.delete_student(student_id))

    @app.route("/api/students/bulk-delete", methods=["POST"], endpoint="students_bulk_delete")
    @admin_required
    def bulk_delete():
        ids = json_body().get("ids")
        return ok(students.bulk_delete(ids if isinstance(ids, list) else []))

    @app.route("/api/students/<student_id>/assign-parent", methods=["POST"], endpoint="students_assign_parent")
    @admin_required
    def assign_parent(student_id: str):
        parent_id = str(json_body().get("parent_id") or "")
        return ok(students.assign_parent(student_id, parent_id))

    @app.route("/api/students/parents/<parent_id>", methods=["PUT"], endpoint="students_update_parent")
    @admin_required
    def update_parent(parent_id: str):
        body = json_body()
        return ok(students.update_parent(parent_id, full_name=body.get("full_name"), phone=body.get("phone")))

    @app.route("/api/students/<student_id>/parents/<parent_id>", methods=["DELETE"], endpoint="students_remove_parent")
    @admin_required
    def remove_parent(student_id: str, parent_id: str):
        return ok(students.remove_parent(student_id, parent_id))

    @app.route("/api/students/import-excel", methods=["POST"], endpoint="students_import_excel")
    @admin_required
    def import_excel():
        rows = parse_student_sheet(_uploaded_spreadsheet())
        result = importer.import_students(rows, ImportMode.parse(request.args.get("mode")))
        return ok(result.to_dict())

    @app.route("/api/students/import-parents", methods=["POST"], endpoint="students_import_parents")
    @admin_required
    def import_parents():
        rows = parse_parent_sheet(_uploaded_spreadsheet())
        result = importer.import_parents(rows, ImportMode.parse(request.args.get("mode")))
        return ok(result.to_dict())
