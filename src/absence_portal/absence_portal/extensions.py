from flask import current_app
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
cors = CORS()


# Limit providers are module-level so every app registers the same limit object.
def login_rate_limit() -> str:
    return current_app.config["LOGIN_RATE_LIMIT"]


def otp_rate_limit() -> str:
    return current_app.config["OTP_RATE_LIMIT"]
