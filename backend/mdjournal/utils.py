from __future__ import annotations

import datetime as dt
import math
import re
from typing import Any, Optional

TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Schedules may run past midnight up to this hour.
MAX_DISPLAY_HOUR = 36


def time_to_minutes(value: str) -> int:
    """Return minutes since midnight for an ``H:MM`` or ``HH:MM`` string."""
    hours, _, minutes = value.partition(":")
    return int(hours) * 60 + int(minutes or 0)


def minutes_to_time(total_minutes: int) -> str:
    hours, minutes = divmod(int(total_minutes), 60)
    return f"{hours:02d}:{minutes:02d}"


def normalize_time(value: Any) -> Optional[str]:
    """Return a zero-padded ``HH:MM`` string, or ``None`` when the value is not a time."""
    if value is None:
        return None
    match = TIME_PATTERN.match(str(value).strip())
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if minutes > 59 or hours > MAX_DISPLAY_HOUR:
        return None
    if hours == MAX_DISPLAY_HOUR and minutes:
        return None
    return f"{hours:02d}:{minutes:02d}"


def is_valid_date(value: Any) -> bool:
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        return False
    try:
        dt.date.fromisoformat(value)
    except ValueError:
        return False
    return True


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def snap_minutes(minutes: float, step: int = 15) -> int:
    return round_half_up(minutes / step) * step
