# dates.py
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

import dateparser

RELATIVE_DAY_OFFSETS = {
    "大後天": 3,
    "後天": 2,
    "明天": 1,
    "明日": 1,
    "今天": 0,
    "今晚": 0,
    "今日": 0,
    "day after tomorrow": 2,
    "tomorrow": 1,
    "today": 0,
    "tonight": 0,
}


def offset_date(today: date, days: int) -> date:
    return today + timedelta(days=days)


def next_weekday(today: date, weekday: int, next_week: bool = False) -> date:
    """Resolve a weekday (Monday=0) to a concrete date.

    Without ``next_week`` the next occurrence strictly after today is used,
    so asking for the current weekday gives the same day next week. With
    ``next_week`` the weekday is taken from the following Monday-based week.
    """
    if next_week:
        next_monday = today + timedelta(days=7 - today.weekday())
        return next_monday + timedelta(days=weekday)

    days_ahead = (weekday - today.weekday()) % 7
    return today + timedelta(days=days_ahead or 7)


def next_month_day(today: date, month: int, day: int) -> Optional[date]:
    """Resolve a month/day pair to its next occurrence on or after today.

    Returns None when the pair is not a valid calendar day in the
    resolved year.
    """
    year = today.year
    if (month, day) < (today.month, today.day):
        year += 1
    try:
        return date(year, month, day)
    except ValueError:
        return None


def explicit_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def normalize_date_en(text: str, today: date) -> Optional[date]:
    """Normalize an English date phrase ('Oct 25', '25 October') to a date.

    Parsing is anchored on ``today`` so the result is deterministic and
    always lands on the next occurrence.
    """
    base = datetime(today.year, today.month, today.day)
    parsed = dateparser.parse(
        text,
        languages=["en"],
        settings={
            "PREFER_DATES_FROM": "future",
            "RELATIVE_BASE": base,
            "DATE_ORDER": "MDY",
        },
    )
    if parsed is None:
        return None
    return parsed.date()


def normalize_dates_en(date_strings: Iterable[str], today: date) -> List[str]:
    out = []
    for s in date_strings:
        d = normalize_date_en(s, today)
        if d:
            out.append(d.isoformat())

    # dedupe keep order
    seen = set()
    uniq = []
    for d in out:
        if d not in seen:
            uniq.append(d)
            seen.add(d)
    return uniq
