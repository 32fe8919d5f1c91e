from __future__ import annotations

from flask import Flask

from ..common.http import auth_decorators, current_claims, json_body, ok
from ..container import Container
from ..extensions import limiter, login_rate_limit


def register(app: Flask, container: Container) -> None:
    jwt_required, _ = auth_decorators(container.token_service)

    @app.route("/api/auth/login", methods=["POST"], endpoint="auth_login")
    @limiter.limit(login_rate_limit)
    def login():
        body = json_body()
        result = container.auth_service.login(body.get("username", ""), body.get("password", ""))
        return ok(result.to_dict())

    @app.route("/api/auth/profile", methods=["GET"], endpoint="auth_profile")
    @jwt_required
    def profile():
        return ok(container.auth_service.get_profile(current_claims().user_id))

    @app.route("/api/auth/change-password", methods=["PUT"], endpoint="auth_change_password")
    @jwt_required
    def change_password():
        body = json_body()
        result = container.auth_service.change_password(
            current_claims().user_id,
            body.get("current_password", ""),
            body.get("new_password", ""),
        )
        return ok(result)
