from __future__ import annotations

from typing import Any, Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required.")
    return str(value).strip()


def require_min_length(value: Optional[str], field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters.")
    return value


def require_int_between(value: Any, field_name: str, low: int, high: int, *, default: int) -> int:
    """Coerce form input to int; unparsable or zero input falls back to ``default``."""
    try:
        number = int(value) or default
    except (TypeError, ValueError):
        number = default
    if number < low or number > high:
        raise ValidationError(f"{field_name} must be between {low} and {high}.")
    return number


def optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None
