"""Helpers for turning loosely typed request values into typed ones."""

from datetime import date, datetime, time, timezone
from typing import Any, Optional


def coerce_flag(value: Any) -> Optional[bool]:
    """Interpret a boolean-ish request value.

    ``True``/``"true"``/``"1"`` give True, ``False``/``"false"``/``"0"`` give
    False. Empty, missing and unrecognised values give None (not set).
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("true", "1"):
        return True
    if text in ("false", "0"):
        return False
    return None


def parse_iso8601(value: Any) -> datetime:
    """Parse a strict ISO-8601 date or date-time into an aware UTC datetime.

    Date-only values resolve to midnight UTC; naive date-times are taken
    as UTC.

    Raises:
        ValueError: If the value is not an ISO-8601 string
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValueError(f"'{text}' is not a valid ISO-8601 date")
    else:
        raise ValueError("must be an ISO-8601 date string")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def first_value(value: Any) -> Any:
    """Collapse a repeated query parameter to its first occurrence."""
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value
