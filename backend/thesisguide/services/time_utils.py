from __future__ import annotations

import re
from datetime import date

from thesisguide.core.exceptions import FormatError

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def is_valid_time(value: str | None) -> bool:
    return bool(value) and TIME_PATTERN.match(value) is not None


def to_minutes(value: str, field: str = "time") -> int:
    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        raise FormatError(str(value), field=field)
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def overlaps(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    """Half-open overlap test; touching endpoints do not overlap."""
    return to_minutes(a_start) < to_minutes(b_end) and to_minutes(a_end) > to_minutes(b_start)


def duration(start: str, end: str) -> int:
    return to_minutes(end) - to_minutes(start)


def day_of_week(value: date) -> int:
    # 0 = Monday ... 6 = Sunday
    return value.weekday()
