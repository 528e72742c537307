"""Parsers for the free-text fields found in scraped listings."""
from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

import phonenumbers
from phonenumbers import NumberParseException

PRICE_STRIP = re.compile(r"[€$\s]")
AREA_TOKEN = re.compile(r"(\d+(?:[.,]\d+)?)")
INTEGER_TOKEN = re.compile(r"(\d+)")
PHONE_STRIP = re.compile(r"[^\d+]")


def clean_text(value: Any) -> Optional[str]:
    """Strip surrounding whitespace; blank or missing values become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_price(value: Any) -> Optional[int]:
    """
    Parse a listing price such as ``"90.000€"`` or ``"60.000 €"``.

    Currency symbols and whitespace are dropped, and both ``.`` and ``,``
    are treated as thousands separators. Returns None when nothing numeric
    remains.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)

    cleaned = PRICE_STRIP.sub("", str(value)).replace(".", "").replace(",", "")
    if not cleaned:
        return None

    # Leading digits only, e.g. "250000/mes"
    match = re.match(r"-?\d+", cleaned)
    if not match:
        return None
    return int(match.group(0))


def parse_area(value: Any) -> Optional[int]:
    """Parse square metres such as ``"70 m²"`` or ``"85,5 m²"``, rounded half-up."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        value = str(value)

    match = AREA_TOKEN.search(str(value))
    if not match:
        return None

    try:
        area = Decimal(match.group(1).replace(",", "."))
    except InvalidOperation:
        return None
    return int(area.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def parse_bedrooms(value: Any) -> Optional[int]:
    """Parse a bedroom count such as ``"3 hab."`` or ``"3 habs"``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value

    match = INTEGER_TOKEN.search(str(value))
    if not match:
        return None
    return int(match.group(1))


def normalize_phone(value: Any, default_region: str = "ES") -> Optional[str]:
    """
    Normalize a phone number.

    Valid numbers are returned in E.164. Anything phonenumbers cannot
    validate keeps only digits and ``+``, gaining a leading ``+`` when it
    has more than nine digits.

    Examples:
        "636 51 71 89" -> "+34636517189"
        "+34636517189" -> "+34636517189"
    """
    text = clean_text(value)
    if text is None:
        return None

    cleaned = PHONE_STRIP.sub("", text)
    if not cleaned:
        return None

    try:
        parsed = phonenumbers.parse(text, default_region)
        if phonenumbers.is_valid_number(parsed):
            return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)
    except NumberParseException:
        pass

    if not cleaned.startswith("+") and len(cleaned) > 9:
        cleaned = f"+{cleaned}"
    return cleaned


__all__ = [
    "clean_text",
    "parse_price",
    "parse_area",
    "parse_bedrooms",
    "normalize_phone",
]
