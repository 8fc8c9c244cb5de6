"""Shared utilities used across the booking engine."""

import re
from datetime import date, datetime, time
from typing import Union

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_HTML_TAGS = re.compile(r"</?[^>]+(>|$)")

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def sanitize_text_field(value: object) -> str:
    """Strip control characters, HTML tags and surrounding whitespace.

    Non-string input sanitizes to an empty string.

    Examples:
        >>> sanitize_text_field("  <b>Africa/Addis_Ababa</b>\\n")
        'Africa/Addis_Ababa'
        >>> sanitize_text_field(42)
        ''
    """
    if not isinstance(value, str):
        return ""
    value = _CONTROL_CHARS.sub("", value)
    value = _HTML_TAGS.sub("", value)
    return value.strip()


def parse_date(value: Union[str, date, datetime]) -> date:
    """Parse a YYYY-MM-DD string (or pass a date through)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value.strip()[:10], "%Y-%m-%d").date()


def parse_datetime(value: Union[str, datetime]) -> datetime:
    """Parse 'YYYY-MM-DD HH:MM[:SS]' or ISO 'YYYY-MM-DDTHH:MM[:SS]'."""
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value.strip().replace(" ", "T"))


def format_datetime(value: datetime) -> str:
    """Render a datetime in the storage format."""
    return value.strftime(DATETIME_FORMAT)


def format_time(value: time) -> str:
    return value.strftime("%H:%M:%S")


def parse_time_of_day(value: Union[str, time]) -> time:
    """Parse 'HH:MM' or 'HH:MM:SS' into a time of day.

    Examples:
        >>> parse_time_of_day("08:00")
        datetime.time(8, 0)
        >>> parse_time_of_day("23:59:59")
        datetime.time(23, 59, 59)
    """
    if isinstance(value, time):
        return value
    text = value.strip()
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Invalid time of day: {value!r}")
