"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 2000

MIN_WARNING_NUMBER = 1
MAX_WARNING_NUMBER = 10

OTP_CODE_LENGTH = 4
OTP_TOKEN_BYTES = 4
OTP_BCRYPT_ROUNDS = 10
OTP_TOKEN_RETRIES = 5

MIN_PASSWORD_LENGTH = 6
MIN_PHONE_LENGTH = 10
PARENT_PASSWORD_SUFFIX = 6

ALLOWED_UPLOAD_MIMETYPES = frozenset({"application/pdf", "image/jpeg", "image/jpg", "image/png"})

FILE_MIMETYPES = {
    "pdf": "application/pdf",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
}

DOWNLOAD_BASENAME = "devamsizlik-mektubu"
