from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization."""

    ADMIN = "ADMIN"
    PARENT = "PARENT"


class StudentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class ImportMode(str, Enum):
    """Spreadsheet import runs either as a dry preview or a real import."""

    PREVIEW = "preview"
    IMPORT = "import"

    @classmethod
    def parse(cls, value: str | None) -> "ImportMode":
        return cls.IMPORT if (value or "").strip().lower() == cls.IMPORT.value else cls.PREVIEW
