from __future__ import annotations

import json
import logging
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional, Union
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.core.errors import ToolArgumentError

logger = logging.getLogger(__name__)

BUSINESS_TZ = ZoneInfo(settings.timezone)

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_HAS_OFFSET = re.compile(r"(Z|[+-]\d{2}:?\d{2})$", re.IGNORECASE)
_COMPACT_OFFSET = re.compile(r"([+-]\d{2})(\d{2})$")


# ──────────────────────────────────────────────────────────────────────────────
# Parsing
# ──────────────────────────────────────────────────────────────────────────────


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_date_only(value: Optional[str]) -> bool:
    return bool(value) and bool(_DATE_ONLY.match(value.strip()))


def has_explicit_offset(value: str) -> bool:
    return bool(_HAS_OFFSET.search(value.strip()))


def parse_instant(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware datetime.

    Values without an offset are wall-clock times in the business
    timezone. The offset for such values comes from the zone rules for
    that date, so summer dates get daylight time and winter dates get
    standard time.
    """
    text = (value or "").strip()
    if not text:
        raise ToolArgumentError("Missing date/time value")
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    elif "T" in text:
        # fromisoformat before 3.11 only takes offsets written as -04:00
        text = _COMPACT_OFFSET.sub(r"\1:\2", text)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ToolArgumentError(f"Invalid date/time: {value}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=BUSINESS_TZ)
    return parsed


def parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ToolArgumentError(f"Invalid date format; expected YYYY-MM-DD: {value}")


def parse_square_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Square timestamps are RFC 3339 in UTC (``2026-10-20T14:00:00Z``)."""
    if not value:
        return None
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    return datetime.fromisoformat(text).astimezone(timezone.utc)


def to_square_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def normalize_local_time(value: str) -> str:
    """Return ``value`` as a business-local ISO string with its offset.

    Times without an offset are taken as business-local wall time; UTC
    times are converted to the business timezone so logs and the booking
    note always read in local terms.
    """
    text = (value or "").strip()
    instant = parse_instant(text)
    if not has_explicit_offset(text):
        logger.warning(f"⚠️ Missing timezone offset: {text}")
    elif text[-1] in "zZ":
        logger.warning(f"⚠️ Received UTC time, converting to {BUSINESS_TZ.key}: {text}")
    local_iso = instant.astimezone(BUSINESS_TZ).isoformat(timespec="seconds")
    if local_iso != text:
        logger.info(f"✅ Normalized time: {text} → {local_iso}")
    return local_iso


def parse_booking_time(start_time: str) -> str:
    """Resolve a createBooking start time to a UTC timestamp for Square.

    Agents sometimes echo back a whole slot object from getAvailability
    as a JSON string; its UTC start is used in that case. Unparseable
    input is passed through untouched and left for Square to reject.
    """
    text = (start_time or "").strip()
    if text.startswith("{"):
        try:
            slot = json.loads(text)
        except json.JSONDecodeError:
            slot = None
        if isinstance(slot, dict):
            text = slot.get("start_at_utc") or slot.get("start_at") or slot.get("startAt") or text
    try:
        instant = parse_instant(text)
    except ToolArgumentError:
        logger.warning(f"⚠️ Could not parse booking time, sending as-is: {start_time}")
        return text
    utc_value = to_square_timestamp(instant)
    if utc_value != text:
        logger.info(f"🕐 Converted booking time to UTC: {text} → {utc_value}")
    return utc_value


def civil_day_bounds(day: date) -> tuple[datetime, datetime]:
    """Midnight through 23:59:59 of ``day`` in the business timezone."""
    start = datetime.combine(day, time(0, 0, 0), tzinfo=BUSINESS_TZ)
    end = datetime.combine(day, time(23, 59, 59), tzinfo=BUSINESS_TZ)
    return start, end


# ──────────────────────────────────────────────────────────────────────────────
# Display formatting
# ──────────────────────────────────────────────────────────────────────────────


def _clock_12h(local: datetime) -> str:
    hour = local.hour % 12 or 12
    period = "PM" if local.hour >= 12 else "AM"
    return f"{hour}:{local.minute:02d} {period}"


def _as_instant(value: Union[datetime, str]) -> datetime:
    if isinstance(value, datetime):
        return value
    return parse_instant(value)


def format_local(value: Union[datetime, str, None]) -> Optional[str]:
    """Human-readable business-local time, e.g. ``Tue, Oct 20, 2026, 2:00 PM EDT``."""
    if value is None or value == "":
        return None
    try:
        local = _as_instant(value).astimezone(BUSINESS_TZ)
    except ToolArgumentError:
        logger.error(f"❌ Invalid date: {value}")
        return str(value)
    return (
        f"{local:%a, %b} {local.day}, {local.year}, "
        f"{_clock_12h(local)} {local.tzname()}"
    )


def format_time_slot(start_at: datetime) -> dict[str, Any]:
    """Display fields attached to every availability slot."""
    local = start_at.astimezone(BUSINESS_TZ)
    return {
        "start_at_utc": to_square_timestamp(start_at),
        "start_at_local": local.isoformat(timespec="seconds"),
        "human_readable": _clock_12h(local),
        "time_24h": f"{local.hour:02d}:{local.minute:02d}",
    }


def current_datetime_context(now: datetime) -> dict[str, Any]:
    """Date phrases that help an agent resolve "tomorrow" or "thursday"."""
    local = now.astimezone(BUSINESS_TZ)
    today_text = f"{local:%A, %B} {local.day}, {local.year} at {_clock_12h(local)}"

    tomorrow = local + timedelta(days=1)
    tomorrow_text = f"{tomorrow:%A, %B} {tomorrow.day}, {tomorrow.year}"

    days_until_thursday = (3 - local.weekday() + 7) % 7 or 7
    thursday = local + timedelta(days=days_until_thursday)
    thursday_text = f"{thursday:%B} {thursday.day}, {thursday.year}"

    return {
        "current": {
            "dateTime": today_text,
            "date": local.date().isoformat(),
            "timezone": f"{BUSINESS_TZ.key} ({local.tzname()})",
            "utc": to_square_timestamp(now),
        },
        "context": {
            "tomorrow": tomorrow_text,
            "nextThursday": thursday_text,
            "message": (
                f"Today is {today_text}. When the customer says 'thursday', they mean "
                f"{thursday_text}. When they say 'tomorrow', they mean {tomorrow_text}."
            ),
        },
    }
