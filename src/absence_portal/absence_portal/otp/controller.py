from __future__ import annotations

from flask import Flask

from ..common.http import json_body, ok
from ..container import Container
from ..extensions import limiter, otp_rate_limit


def register(app: Flask, container: Container) -> None:
    otps = container.otp_service

    @app.route("/api/otp/verify", methods=["POST"], endpoint="otp_verify")
    @limiter.limit(otp_rate_limit)
    def verify():
        body = json_body()
        return ok(otps.verify_by_token(str(body.get("token") or ""), str(body.get("code") or "")))

    @app.route("/api/otp/info/<token>", methods=["GET"], endpoint="otp_info")
    def info(token: str):
        return ok(otps.info_by_token(token))
