"""Per-type validation of a single lead answer."""

from __future__ import annotations

import re
from urllib.parse import urlparse

from chatbot_engine.models.entities import FieldType, LeadField

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PHONE_DIGITS = 7


def validate_field_value(field: LeadField, value: str) -> str | None:
    """Return an error message for ``value``, or None when it is acceptable.

    Blank answers fail required fields and pass optional ones.
    """
    answer = value.strip()
    if not answer:
        return f"Please provide your {field.label.lower()}." if field.required else None

    if field.type is FieldType.EMAIL:
        return None if EMAIL_RE.match(answer) else "Please enter a valid email address."
    if field.type is FieldType.PHONE:
        digits = sum(char.isdigit() for char in answer)
        return None if digits >= MIN_PHONE_DIGITS else "Please enter a valid phone number."
    if field.type in (FieldType.NUMBER, FieldType.CURRENCY):
        return None if _is_number(answer) else "Please enter a valid number."
    if field.type is FieldType.LINK:
        return None if _is_url(answer) else "Please enter a valid URL."
    if field.type in (FieldType.SELECT, FieldType.RADIO):
        if not field.options:
            return None
        allowed = {option.lower() for option in field.options}
        if answer.lower() in allowed:
            return None
        return f"Please choose one of: {', '.join(field.options)}."
    return None


def _is_number(text: str) -> bool:
    try:
        float(text)
    except ValueError:
        return False
    return True


def _is_url(text: str) -> bool:
    parsed = urlparse(text)
    return bool(parsed.scheme and parsed.netloc)


__all__ = ["validate_field_value", "EMAIL_RE"]
