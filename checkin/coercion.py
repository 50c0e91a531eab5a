"""
Boundary coercion for backend payloads.

Every helper here returns None for values it cannot interpret instead of
raising, so malformed snapshots degrade to "unknown" in the evaluators.
"""

import math
import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any


def to_finite_number_or_none(value: Any) -> float | None:
    """Coerce a number or numeric string to a finite float."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def local_timezone(utc_offset_minutes: int) -> timezone:
    return timezone(timedelta(minutes=utc_offset_minutes))


_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")


def parse_timestamp(value: Any, default_tz: tzinfo = timezone.utc) -> datetime | None:
    """Parse an ISO-8601 timestamp. Naive results are read in ``default_tz``."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        # Laravel-style "2024-01-10 10:00:00" and trailing "Z" both occur
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=default_tz)
    return parsed


def parse_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None


def parse_time_of_day(value: Any) -> time | None:
    """Parse "HH:MM" or "HH:MM:SS". Full timestamps are not times of day."""
    if isinstance(value, time):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if "T" in text or _DATE_PREFIX.match(text):
        return None
    try:
        return time.fromisoformat(text)
    except ValueError:
        return None


def resolve_scheduled_start(
    session_date: Any, start_time: Any, utc_offset_minutes: int
) -> datetime | None:
    """
    Combine a session date and start time into an aware datetime.

    The start time may also be a complete timestamp, in which case the
    session date is ignored. Naive values of either kind are local.
    """
    local = local_timezone(utc_offset_minutes)
    if isinstance(start_time, datetime) or (
        isinstance(start_time, str) and _DATE_PREFIX.match(start_time.strip())
    ):
        return parse_timestamp(start_time, default_tz=local)

    day = parse_date(session_date)
    clock = parse_time_of_day(start_time)
    if day is None or clock is None:
        return None
    return datetime.combine(day, clock.replace(tzinfo=None), tzinfo=clock.tzinfo or local)


def ensure_aware(moment: datetime, utc_offset_minutes: int) -> datetime:
    """Interpret naive datetimes in the configured local offset."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=local_timezone(utc_offset_minutes))
    return moment
