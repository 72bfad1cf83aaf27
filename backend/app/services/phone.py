"""Phone number formats for the Square customer directory.

Square's customer search only matches E.164 numbers (``+15715276016``),
while customer creation for US numbers expects the bare ten digits
(``5715276016``). Everything that talks to the directory goes through
these helpers so the two formats never get mixed up.
"""

from __future__ import annotations

import re

from app.core.errors import InvalidPhoneNumberError

_NON_DIGITS = re.compile(r"\D")


def normalize_phone_number(phone: str) -> str:
    """Normalize to E.164 (``+1XXXXXXXXXX`` for US numbers).

    Idempotent: an already-normalized number comes back unchanged.
    """
    if not phone or not str(phone).strip():
        raise InvalidPhoneNumberError("Missing phone number")

    digits = _NON_DIGITS.sub("", str(phone))
    if len(digits) < 10:
        raise InvalidPhoneNumberError(f"Invalid phone number: {phone}")

    if len(digits) == 10:
        return f"+1{digits}"
    return f"+{digits}"


def format_phone_for_creation(normalized_phone: str) -> str:
    """Strip the ``+1`` country code for Square's createCustomer.

    Only North American numbers (``+1`` and ten digits) are shortened.
    """
    if normalized_phone.startswith("+1") and len(normalized_phone) == 12:
        return normalized_phone[2:]
    return normalized_phone


def phone_search_formats(phone: str) -> list[str]:
    # Square rejects anything but E.164 in search, so there is only one.
    return [normalize_phone_number(phone)]
