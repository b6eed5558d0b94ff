"""Timezone resolution helpers."""

from __future__ import annotations

import logging
from datetime import tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


def resolve_timezone(tz_name: str) -> tzinfo | None:
    """Resolve an IANA timezone name.

    Returns ``None`` for "host local time", which is how the upstream device
    stamps its records. Callers then keep datetimes naive so the OS applies
    the host's rules (including DST) for each individual date, rather than
    one UTC offset captured at startup. Unknown names also mean host local.
    """
    if not tz_name:
        return None
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r; using host local time", tz_name)
        return None
