from __future__ import annotations

import io

from flask import Flask, request, send_file

from ..common.http import auth_decorators, bearer_token, json_body, ok
from ..common.pagination import Page
from ..container import Container
from .service import LetterUpload


def register(app: Flask, container: Container) -> None:
    _, admin_required = auth_decorators(container.token_service)
    records = container.absenteeism_service
    guard = container.access_guard

    @app.route("/api/absenteeism/stats", methods=["GET"], endpoint="absenteeism_stats")
    @admin_required
    def stats():
        return ok(records.stats())

    @app.route("/api/absenteeism", methods=["GET"], endpoint="absenteeism_list")
    @admin_required
    def list_records():
        page = Page.from_args(request.args.get("page"), request.args.get("limit"))
        return ok(records.list_records(page=page, student_id=request.args.get("student_id")))

    @app.route("/api/absenteeism", methods=["POST"], endpoint="absenteeism_create")
    @admin_required
    def create_record():
        upload = request.files.get("pdf")
        letter = LetterUpload(stream=upload.stream, filename=upload.filename or "", mimetype=upload.mimetype) if upload else None
        result = records.create_record(
            student_id=request.form.get("student_id"),
            warning_number=request.form.get("warning_number"),
            upload=letter,
        )
        return ok(result, 201)

    @app.route("/api/absenteeism/warning-count/<student_id>", methods=["GET"], endpoint="absenteeism_warning_count")
    @admin_required
    def warning_count(student_id: str):
        return ok(records.warning_count(student_id))

    @app.route("/api/absenteeism/<absenteeism_id>", methods=["GET"], endpoint="absenteeism_get")
    @admin_required
    def get_record(absenteeism_id: str):
        return ok(records.get_record(absenteeism_id))

    @app.route("/api/absenteeism/<absenteeism_id>", methods=["DELETE"], endpoint="absenteeism_delete")
    @admin_required
    def delete_record(absenteeism_id: str):
        return ok(records.delete_record(absenteeism_id))

    @app.route("/api/absenteeism/<absenteeism_id>/generate-otp", methods=["POST"], endpoint="absenteeism_generate_otp")
    @admin_required
    def generate_otp(absenteeism_id: str):
        body = json_body()
        result = records.generate_otp_and_link(
            absenteeism_id,
            str(body.get("parent_phone") or ""),
            str(body.get("parent_name") or ""),
        )
        return ok(result)

    @app.route("/api/absenteeism/<absenteeism_id>/otp/<token>/qr", methods=["GET"], endpoint="absenteeism_link_qr")
    @admin_required
    def link_qr(absenteeism_id: str, token: str):
        png = records.link_qr_png(absenteeism_id, token)
        return send_file(io.BytesIO(png), mimetype="image/png", download_name=f"{token}.png")

    def _send_letter(absenteeism_id: str, *, as_attachment: bool):
        guard.check(
            absenteeism_id,
            bearer=bearer_token(),
            query_jwt=request.args.get("jwt"),
            link_token=request.args.get("token"),
        )
        letter = records.resolve_letter(absenteeism_id)
        return send_file(
            letter.path,
            mimetype=letter.mimetype,
            as_attachment=as_attachment,
            download_name=letter.download_name,
        )

    @app.route("/api/absenteeism/<absenteeism_id>/pdf", methods=["GET"], endpoint="absenteeism_letter")
    def view_letter(absenteeism_id: str):
        return _send_letter(absenteeism_id, as_attachment=False)

    @app.route("/api/absenteeism/<absenteeism_id>/pdf/download", methods=["GET"], endpoint="absenteeism_letter_download")
    def download_letter(absenteeism_id: str):
        return _send_letter(absenteeism_id, as_attachment=True)
