from collections.abc import Mapping
from typing import Optional
from urllib.parse import quote

WHATSAPP_TEMPLATE = "https://wa.me/{phone}?text={text}"

# Characters encodeURIComponent leaves alone
_SAFE = "-_.!~*'()"


def _field(car, name):
    if isinstance(car, Mapping):
        return car.get(name)
    return getattr(car, name, None)


def format_contact_link(car, phone: Optional[str]) -> Optional[str]:
    """WhatsApp deep link with a prefilled message about ``car``.

    Returns None when no phone number is configured.
    """
    phone = "".join(ch for ch in str(phone or "") if ch.isdigit())
    if not phone:
        return None

    message = f"Hola, me interesa el {_field(car, 'title')} {_field(car, 'year')}"
    vin = (_field(car, "vin") or "").strip().upper()
    if vin:
        message += f" (VIN • {vin[-6:]})"

    return WHATSAPP_TEMPLATE.format(phone=phone, text=quote(message, safe=_SAFE))
