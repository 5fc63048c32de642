"""Clock-time extraction for Chinese and English utterances.

Recognized forms, tried in this order:

- ``HH:MM`` (half- or full-width colon), optionally preceded by a period word
- Chinese numerals or digits with 點/時, followed by 半, 一刻, 三刻 or minutes
- English ``8am`` / ``8:30 pm`` / ``noon`` / ``midnight``
- a bare period word, mapped to a default clock time

Period words turn 12-hour values into 24-hour ones. Everything resolves
to a zero-padded ``HH:MM`` string.

Example
-------
    >>> extract_time("台北到台中明天早上八點")
    '08:00'
    >>> extract_time("下午兩點半")
    '14:30'
"""

from __future__ import annotations

import re
from typing import Optional

# Period word -> clock time used when the utterance gives no hour
PERIOD_DEFAULTS = {
    "凌晨": "04:00",
    "清晨": "06:00",
    "早上": "08:00",
    "上午": "10:00",
    "中午": "12:00",
    "下午": "14:00",
    "傍晚": "17:00",
    "晚上": "18:00",
    "今晚": "20:00",
    "夜晚": "20:00",
    "深夜": "22:00",
    "morning": "08:00",
    "noon": "12:00",
    "afternoon": "14:00",
    "evening": "18:00",
    "tonight": "20:00",
    "midnight": "00:00",
}

AFTERNOON_PERIODS = {
    "下午",
    "傍晚",
    "晚上",
    "今晚",
    "夜晚",
    "afternoon",
    "evening",
    "tonight",
}
EARLY_PERIODS = {"凌晨", "midnight"}

CHINESE_DIGITS = {
    "零": 0,
    "〇": 0,
    "一": 1,
    "二": 2,
    "兩": 2,
    "两": 2,
    "三": 3,
    "四": 4,
    "五": 5,
    "六": 6,
    "七": 7,
    "八": 8,
    "九": 9,
}

_NUMERAL = (
    r"(?:\d{1,2}|[一二兩两三四五]?十[一二三四五六七八九]?"
    r"|[零〇][一二三四五六七八九]|[零〇一二兩两三四五六七八九])"
)
_PERIOD_ZH = r"(?:凌晨|清晨|早上|上午|中午|下午|傍晚|晚上|今晚|夜晚|深夜)"
_PERIOD_EN = r"\b(?:morning|noon|afternoon|evening|tonight|midnight)\b"

_COLON_CLOCK = re.compile(
    rf"(?P<period>{_PERIOD_ZH})?\s*(?<![\d/])(?P<hour>\d{{1,2}})[:：](?P<minute>\d{{2}})"
    r"(?:[:：]\d{2})?(?!\d)\s*(?P<meridiem>[ap]\.?m\.?(?![a-z]))?",
    re.IGNORECASE,
)
_ZH_CLOCK = re.compile(
    rf"(?P<period>{_PERIOD_ZH})?\s*(?<!\d)(?P<hour>{_NUMERAL})\s*(?:點|点|時(?!刻)|时(?!刻))"
    rf"(?:\s*(?:(?P<half>半)|(?P<quarter>一刻|三刻)|(?P<minute>{_NUMERAL})\s*分?))?"
)
_EN_CLOCK = re.compile(
    r"(?<![\d:])(?P<hour>\d{1,2})(?:[.:](?P<minute>\d{2}))?\s*"
    r"(?P<meridiem>[ap]\.?m\.?)(?![a-z])",
    re.IGNORECASE,
)
_PERIOD_ONLY = re.compile(rf"{_PERIOD_ZH}|{_PERIOD_EN}", re.IGNORECASE)

# Fragments removed from station text during route extraction
TIME_FRAGMENT = re.compile(
    rf"{_PERIOD_ZH}?\s*(?<!\d){_NUMERAL}\s*(?:點|点|時(?!刻)|时(?!刻))"
    rf"(?:\s*(?:半|一刻|三刻|{_NUMERAL}\s*分?))?"
    r"|\d{1,2}[:：]\d{2}(?:[:：]\d{2})?(?:\s*[ap]\.?m\.?(?![a-z]))?"
    r"|(?<![\d:])\d{1,2}\s*[ap]\.?m\.?(?![a-z])"
    rf"|{_PERIOD_ZH}|{_PERIOD_EN}",
    re.IGNORECASE,
)


def chinese_to_int(token: str) -> Optional[int]:
    """Convert a digit string or a Chinese numeral below 100 to an int.

    >>> chinese_to_int("二十三")
    23
    """
    if not token:
        return None
    if token.isdigit():
        return int(token)

    if "十" in token:
        tens_part, _, units_part = token.partition("十")
        tens = CHINESE_DIGITS.get(tens_part, -1) if tens_part else 1
        units = CHINESE_DIGITS.get(units_part, -1) if units_part else 0
        if tens < 0 or units < 0 or "十" in units_part:
            return None
        return tens * 10 + units

    # 零五 as in 八點零五分
    if len(token) == 2 and token[0] in "零〇":
        return CHINESE_DIGITS.get(token[1])
    return CHINESE_DIGITS.get(token)


def apply_period(hour: int, period: Optional[str]) -> int:
    """Turn a 12-hour value into a 24-hour one using a period word."""
    if period is None:
        return hour
    period = period.lower()
    if period in AFTERNOON_PERIODS:
        return hour + 12 if hour < 12 else hour
    if period in ("中午", "noon"):
        return hour + 12 if hour < 11 else hour
    if period == "深夜":
        return hour + 12 if 6 <= hour < 12 else hour
    if period in EARLY_PERIODS and hour == 12:
        return 0
    return hour


def apply_meridiem(hour: int, meridiem: str) -> int:
    meridiem = meridiem.lower().replace(".", "")
    if meridiem == "am":
        return 0 if hour == 12 else hour
    return hour if hour == 12 else hour + 12


def format_clock(hour: int, minute: int) -> Optional[str]:
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return f"{hour:02d}:{minute:02d}"


def _english_period(text: str) -> Optional[str]:
    match = re.search(_PERIOD_EN, text, re.IGNORECASE)
    return match.group(0).lower() if match else None


def _from_colon(match: re.Match[str], text: str) -> Optional[str]:
    hour = int(match.group("hour"))
    minute = int(match.group("minute"))
    if match.group("meridiem"):
        if not 1 <= hour <= 12:
            return None
        hour = apply_meridiem(hour, match.group("meridiem"))
    else:
        hour = apply_period(hour, match.group("period") or _english_period(text))
    return format_clock(hour, minute)


def _from_chinese(match: re.Match[str]) -> Optional[str]:
    hour = chinese_to_int(match.group("hour"))
    if hour is None:
        return None

    minute = 0
    if match.group("half"):
        minute = 30
    elif match.group("quarter"):
        minute = 15 if match.group("quarter") == "一刻" else 45
    elif match.group("minute"):
        parsed = chinese_to_int(match.group("minute"))
        if parsed is None:
            return None
        minute = parsed

    return format_clock(apply_period(hour, match.group("period")), minute)


def _from_english(match: re.Match[str]) -> Optional[str]:
    hour = int(match.group("hour"))
    if not 1 <= hour <= 12:
        return None
    minute = int(match.group("minute") or 0)
    return format_clock(apply_meridiem(hour, match.group("meridiem")), minute)


def extract_time(text: str) -> Optional[str]:
    """Extract the first clock time mentioned in ``text``.

    Args:
        text: Sanitized utterance.

    Returns:
        24-hour ``HH:MM`` or None when no valid time is mentioned.
    """
    if not text:
        return None

    for match in _COLON_CLOCK.finditer(text):
        value = _from_colon(match, text)
        if value:
            return value

    for match in _ZH_CLOCK.finditer(text):
        value = _from_chinese(match)
        if value:
            return value

    for match in _EN_CLOCK.finditer(text):
        value = _from_english(match)
        if value:
            return value

    period = _PERIOD_ONLY.search(text)
    if period:
        return PERIOD_DEFAULTS.get(period.group(0).lower())
    return None


def strip_time_expressions(text: str) -> str:
    """Remove clock expressions and period words from ``text``."""
    return TIME_FRAGMENT.sub(" ", text)
