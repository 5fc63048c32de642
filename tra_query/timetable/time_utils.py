"""Clock-string arithmetic for timetable times ('HH:MM' or 'HH:MM:SS')."""

from __future__ import annotations

import re
from typing import Optional, Tuple

MINUTES_PER_DAY = 24 * 60

_CLOCK = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def parse_clock(value: str) -> Tuple[int, int, Optional[int]]:
    """Split a clock string into (hour, minute, second).

    ``second`` is None when the string has no seconds part.

    Raises:
        ValueError: If the string is not a valid 24-hour clock time.
    """
    match = _CLOCK.match((value or "").strip())
    if not match:
        raise ValueError(f"Not a clock time: {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    second = int(match.group(3)) if match.group(3) is not None else None
    if hour > 23 or minute > 59 or (second is not None and second > 59):
        raise ValueError(f"Clock time out of range: {value!r}")
    return hour, minute, second


def is_clock(value: str) -> bool:
    try:
        parse_clock(value)
    except ValueError:
        return False
    return True


def to_minutes(value: str) -> int:
    """Minutes since midnight, ignoring seconds."""
    hour, minute, _ = parse_clock(value)
    return hour * 60 + minute


def add_minutes(value: str, delta: int) -> str:
    """Shift a clock time by ``delta`` minutes, wrapping around midnight.

    Any magnitude is accepted, negative included. A seconds part is carried
    over unchanged: ``add_minutes("23:59:59", 1) == "00:00:59"``.
    """
    hour, minute, second = parse_clock(value)
    total = (hour * 60 + minute + int(delta)) % MINUTES_PER_DAY
    shifted = f"{total // 60:02d}:{total % 60:02d}"
    if second is not None:
        shifted += f":{second:02d}"
    return shifted


def travel_minutes(departure: str, arrival: str) -> int:
    """Minutes between two clock times; an earlier arrival means overnight."""
    minutes = to_minutes(arrival) - to_minutes(departure)
    if minutes < 0:
        minutes += MINUTES_PER_DAY
    return minutes


def format_duration(minutes: int) -> str:
    """Short bilingual-neutral duration label, e.g. '1h05m'."""
    hours, rest = divmod(max(0, minutes), 60)
    if not hours:
        return f"{rest}m"
    return f"{hours}h{rest:02d}m"
