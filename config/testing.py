import os
import tempfile

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "absence_portal_test"),
}

JWT_SECRET = "test-jwt-secret"
JWT_EXPIRES_HOURS = 8

OTP_EXPIRY_MINUTES = 1440
OTP_MAX_ATTEMPTS = 3

UPLOAD_DIR = os.path.join(tempfile.gettempdir(), "absence_portal_uploads")
MAX_UPLOAD_BYTES = 10 * 1024 * 1024

FRONTEND_DOMAIN = "https://okul.example.com"
CORS_ORIGIN = "http://localhost:5173"

LOGIN_RATE_LIMIT = "10 per 15 minutes"
OTP_RATE_LIMIT = "10 per 15 minutes"
RATELIMIT_ENABLED = False

LOG_LEVEL = "WARNING"

DEBUG = False
TESTING = True

AUTO_INIT_DB = False
AUTO_SEED_DB = False
