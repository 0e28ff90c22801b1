"""E.164 phone number helpers and the ``whatsapp:`` address prefix."""

from __future__ import annotations

import re
from typing import Final

E164_PATTERN: Final[re.Pattern[str]] = re.compile(r"^\+[1-9]\d{1,14}$")
WHATSAPP_PREFIX: Final[str] = "whatsapp:"


def is_valid_e164(number: object) -> bool:
    """True for strings like ``+14155550123``; non-strings are never valid."""
    return isinstance(number, str) and E164_PATTERN.fullmatch(number) is not None


def to_whatsapp_address(number: str) -> str:
    """
    Address a number on the WhatsApp channel.

    >>> to_whatsapp_address("+14155550123")
    'whatsapp:+14155550123'
    """
    if number.startswith(WHATSAPP_PREFIX):
        return number
    return f"{WHATSAPP_PREFIX}{number}"


def strip_whatsapp_prefix(address: str) -> str:
    if address.startswith(WHATSAPP_PREFIX):
        return address[len(WHATSAPP_PREFIX) :]
    return address


def mask_number(number: str) -> str:
    """
    Hide all but the country lead digit and the last four digits, for logging.

    >>> mask_number("+14155550123")
    '+1******0123'
    """
    number = strip_whatsapp_prefix(number)
    head = 2 if number.startswith("+") else 1
    if len(number) <= head + 4:
        return "*" * len(number)
    return number[:head] + "*" * (len(number) - head - 4) + number[-4:]
