"""Phone number helpers"""

import re
from typing import Optional

from restoagent.config import settings

_PHONE_PATTERN = re.compile(r"^[0-9+\-\s()]{8,}$")


def format_phone_e164(phone: str, region_prefix: Optional[str] = None) -> str:
    """
    Normalize to E.164.

    National numbers starting with 0 get the region prefix (+33 by default):
    "06 12 34 56 78" -> "+33612345678". Digits that already carry the
    country code only get the "+": "33612345678" -> "+33612345678".
    """
    prefix = region_prefix or settings.default_phone_region_prefix
    cleaned = re.sub(r"[^\d+]", "", phone)

    if cleaned.startswith("00"):
        cleaned = "+" + cleaned[2:]
    elif cleaned.startswith("0"):
        cleaned = prefix + cleaned[1:]

    if not cleaned.startswith("+"):
        country_code = prefix.lstrip("+")
        # Already international, only the "+" is missing
        if cleaned.startswith(country_code) and len(cleaned) - len(country_code) >= 9:
            return "+" + cleaned
        cleaned = prefix + cleaned

    return cleaned


def is_valid_phone(phone: Optional[str]) -> bool:
    if not phone:
        return False
    return bool(_PHONE_PATTERN.match(phone.strip()))


def mask_phone(phone: Optional[str]) -> Optional[str]:
    """Last 4 digits only, for logs"""
    if not phone:
        return None
    return phone[-4:]
