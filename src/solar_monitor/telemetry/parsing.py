"""Fail-soft parsing of upstream string fields.

Every upstream value arrives as a string (or is missing entirely). A single
malformed field must not block normalization of the rest of the record, so
these helpers are total: they return a default instead of raising.
"""

from __future__ import annotations

import math
from datetime import datetime, tzinfo

_TIME_FORMATS = ("%H:%M:%S", "%H:%M")


def parse_numeric_or_default(value: object, default: float = 0.0) -> float:
    """Parse ``value`` as a finite float, returning ``default`` on any failure."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return default
        try:
            number = float(text)
        except ValueError:
            return default
    else:
        return default
    return number if math.isfinite(number) else default


def field_at(record: list, index: int) -> object:
    """Return ``record[index]`` or ``None`` when the record is too short."""
    if 0 <= index < len(record):
        return record[index]
    return None


def parse_local_timestamp(date_str: object, time_str: object, tz: tzinfo | None = None) -> int | None:
    """Combine date and time strings read as wall-clock fields in ``tz``.

    With ``tz=None`` the fields are host local time, resolved with the host
    rules in effect on that date.

    Returns epoch milliseconds, or ``None`` if either part is missing or
    unparsable.
    """
    if not isinstance(date_str, str) or not isinstance(time_str, str):
        return None
    try:
        day = datetime.strptime(date_str.strip(), "%Y-%m-%d").date()
    except ValueError:
        return None

    for fmt in _TIME_FORMATS:
        try:
            clock = datetime.strptime(time_str.strip(), fmt).time()
            break
        except ValueError:
            continue
    else:
        return None

    local = datetime.combine(day, clock)
    if tz is not None:
        local = local.replace(tzinfo=tz)
    return int(local.timestamp() * 1000)
