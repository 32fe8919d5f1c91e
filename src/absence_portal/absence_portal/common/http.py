from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable, Optional, Tuple

from flask import Flask, Response, g, jsonify, request
from werkzeug.exceptions import HTTPException

from ..core.exceptions import AuthenticationError, AuthorizationError, DomainError
from ..users.security import TokenClaims, TokenService

logger = logging.getLogger(__name__)


def ok(data: Any = None, status: int = 200) -> Tuple[Response, int]:
    return jsonify({"success": True, "data": data}), status


def fail(message: str, status: int) -> Tuple[Response, int]:
    return jsonify({"success": False, "message": message}), status


def json_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    return header.split(" ", 1)[1].strip() or None


def current_claims() -> TokenClaims:
    return g.claims


def auth_decorators(tokens: TokenService) -> Tuple[Callable, Callable]:
    """Build ``(jwt_required, admin_required)`` view decorators bound to ``tokens``."""

    def jwt_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            token = bearer_token()
            if not token:
                raise AuthenticationError("Authorization failed. Token not found.")
            g.claims = tokens.decode(token)
            return view(*args, **kwargs)

        return wrapper

    def admin_required(view):
        @wraps(view)
        @jwt_required
        def wrapper(*args, **kwargs):
            if not current_claims().is_admin:
                raise AuthorizationError("Administrator permission is required for this action.")
            return view(*args, **kwargs)

        return wrapper

    return jwt_required, admin_required


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(err: DomainError):
        return fail(str(err), err.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_error(err: HTTPException):
        messages = {
            404: "Not found.",
            405: "Method not allowed.",
            413: "File is too large.",
            429: "Too many requests. Please try again later.",
        }
        return fail(messages.get(err.code or 500, err.description or "Request failed."), err.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(err: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return fail("Internal server error.", 500)
