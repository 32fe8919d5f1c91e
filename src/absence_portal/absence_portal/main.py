from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .common.datetime_utils import isoformat, now_utc
from .common.http import ok, register_error_handlers
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_admin_user, list_tables
from .extensions import cors, limiter

from .container import Container, build_container
from .absenteeism.controller import register as register_absenteeism
from .otp.controller import register as register_otp
from .students.controller import register as register_students
from .users.controller import register as register_users

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("werkzeug").setLevel(logging.WARNING)


def create_app(container: Optional[Container] = None, *, settings_module: Optional[str] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    _configure_logging(str(getattr(settings, "LOG_LEVEL", "INFO")))

    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["MAX_CONTENT_LENGTH"] = int(getattr(settings, "MAX_UPLOAD_BYTES", 10 * 1024 * 1024))
    app.config["LOGIN_RATE_LIMIT"] = getattr(settings, "LOGIN_RATE_LIMIT", "10 per 15 minutes")
    app.config["OTP_RATE_LIMIT"] = getattr(settings, "OTP_RATE_LIMIT", "10 per 15 minutes")
    app.config["RATELIMIT_ENABLED"] = bool(getattr(settings, "RATELIMIT_ENABLED", True))

    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if container is None:
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
            apply_schema(db_config, schema_path=schema_path)
            logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            seed_path = Path(__file__).resolve().parents[3] / "database" / "seed.sql"
            apply_seed_sql(db_config, seed_path=seed_path)
            ensure_admin_user(db_config)
            logger.info("demo seed ready")
        container = build_container(db_config=db_config, settings=settings)

    container.letter_storage.ensure_dir()

    origins = [o.strip() for o in str(getattr(settings, "CORS_ORIGIN", "")).split(",") if o.strip()]
    cors.init_app(app, resources={r"/api/*": {"origins": origins}})
    limiter.init_app(app)
    register_error_handlers(app)

    @app.route("/api/health", methods=["GET"], endpoint="health")
    def health():
        return ok({"status": "ok", "timestamp": isoformat(now_utc())})

    register_users(app, container)
    register_students(app, container)
    register_absenteeism(app, container)
    register_otp(app, container)

    return app
