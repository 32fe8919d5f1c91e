from __future__ import annotations

import re


def normalize_phone(phone: str | None) -> str:
    """Normalize Turkish mobile numbers to the 11-digit ``0XXXXXXXXXX`` form.

    Anything that does not look like a Turkish mobile number is returned with
    only separators removed.
    """
    if not phone:
        return ""
    cleaned = re.sub(r"[\s\-()]", "", str(phone))
    if cleaned.startswith("+90"):
        cleaned = "0" + cleaned[3:]
    if cleaned.startswith("90") and len(cleaned) == 12:
        cleaned = "0" + cleaned[2:]
    if len(cleaned) == 10 and cleaned.startswith("5"):
        cleaned = "0" + cleaned
    return cleaned


def digits_only(phone: str) -> str:
    return re.sub(r"\D", "", phone or "")
