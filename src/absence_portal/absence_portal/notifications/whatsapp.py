"""WhatsApp deep links and the message template sent to parents.

No WhatsApp API is used: the admin opens the link in WhatsApp Web and sends
the pre-filled message by hand.
"""

from __future__ import annotations

from urllib.parse import quote

from ..common.phone import digits_only

WHATSAPP_BASE_URL = "https://wa.me"

# Same character set encodeURIComponent leaves alone, so links match what browsers produce.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def build_parent_link(domain: str, token: str = "") -> str:
    domain = (domain or "").rstrip("/")
    return f"{domain}/veli/{token}" if token else f"{domain}/veli-otp"


def _validity_text(valid_minutes: int) -> str:
    if valid_minutes % 60 == 0:
        return f"{valid_minutes // 60} saat"
    return f"{valid_minutes} dakika"


def build_message(
    domain: str,
    code: str,
    parent_name: str = "",
    token: str = "",
    *,
    valid_minutes: int = 1440,
) -> str:
    greeting = f"Sayın {parent_name}," if parent_name else "Sayın Veli,"
    link = build_parent_link(domain, token)
    return (
        f"{greeting}\n"
        "\n"
        "Ogrencinizin devamsizlik bildirimi sisteme yuklenmistir.\n"
        "\n"
        f"Sifre: {code}\n"
        "\n"
        "Asagidaki baglantiya tiklayarak devamsizlik mektubunu goruntuleyebilirsiniz:\n"
        "\n"
        f"{link}\n"
        "\n"
        f"* Sifre {_validity_text(valid_minutes)} gecerlidir."
    )


def build_whatsapp_link(
    parent_phone: str,
    domain: str,
    code: str,
    parent_name: str = "",
    token: str = "",
    *,
    valid_minutes: int = 1440,
) -> str:
    message = build_message(domain, code, parent_name, token, valid_minutes=valid_minutes)
    return f"{WHATSAPP_BASE_URL}/{digits_only(parent_phone)}?text={quote(message, safe=_URI_COMPONENT_SAFE)}"
