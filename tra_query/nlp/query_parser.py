"""Rule-based parser for bilingual railway queries.

Turns an utterance such as "台北到台中明天早上八點" or
"from Taipei to Taichung tomorrow 8am fastest" into a ParsedQuery.

Extraction runs in a fixed order: train number, route, time, date,
preferences. Every rule that fires appends its name to
``matched_rules`` and adds its weight to the confidence score.

Example
-------
    >>> parser = QueryParser(clock=FixedClock(datetime(2024, 10, 25, 9, 0)))
    >>> q = parser.parse("台北到台中明天早上八點")
    >>> (q.origin_text, q.destination_text, q.date, q.time)
    ('台北', '台中', '2024-10-26', '08:00')
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, List, Optional, Tuple

from ..config import ParserConfig, get_config
from ..dates import (
    RELATIVE_DAY_OFFSETS,
    explicit_date,
    next_month_day,
    next_weekday,
    normalize_dates_en,
    offset_date,
)
from ..domain.models import ParsedQuery, SearchPreferences
from ..ports.clock import ClockPort
from .time_expressions import chinese_to_int, extract_time, strip_time_expressions

# Confidence weights
ROUTE_WEIGHT = 0.4
TIME_WEIGHT = 0.2
DATE_WEIGHT = 0.2
PREFERENCES_WEIGHT = 0.1
COMPLETE_BONUS = 0.1

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")
_WHITESPACE = re.compile(r"\s+")

# ---------------------------------------------------------------------------
# Train numbers
# ---------------------------------------------------------------------------

_TRAIN_TOKEN = r"(?<![\d:/])(?P<number>\d{1,4}[A-Za-z]?)"
# A number right after a type keyword is a clock or a date when followed by these
_NOT_A_TRAIN = r"(?![\d:：/點点時时分小月日])"

_TRAIN_PURE = re.compile(r"^\d{1,4}[A-Za-z]?$")
_TRAIN_WITH_TYPE = re.compile(
    r"(?:自強|莒光|復興|區間快|區間|普悠瑪|太魯閣|tze[- ]?chiang|chu[- ]?kuang|puyuma|taroko)"
    r"\s*(?:號|號列車|express)?\s*(?:no\.?\s*)?" + _TRAIN_TOKEN + _NOT_A_TRAIN,
    re.IGNORECASE,
)
_TRAIN_WITH_SUFFIX = re.compile(
    _TRAIN_TOKEN + r"\s*(?:次列車|次|號列車|號車|列車)"
    r"|\btrain\s*(?:no\.?\s*|number\s*|#\s*)?(?P<en_number>\d{1,4}[A-Za-z]?)\b",
    re.IGNORECASE,
)
_TRAIN_STATUS = re.compile(
    _TRAIN_TOKEN + r"\s*號?\s*(?:列車)?\s*(?:準點|誤點|延誤|晚點|位置|狀況|狀態|時刻表|停靠站|停哪)"
    r"|(?<![\d:/])(?P<en_number>\d{1,4}[A-Za-z]?)\s+(?:on time|delayed|late|status)\b",
    re.IGNORECASE,
)

# ---------------------------------------------------------------------------
# Route connectors, tried in this order
# ---------------------------------------------------------------------------

_ROUTE_FROM_TO = re.compile(r"(?:從|由)(?P<origin>.+?)(?:前往|到|去|往|至)(?P<destination>.+)")
_ROUTE_ARROW = re.compile(r"→|->|⇒|=>")
_ROUTE_ZH_CONNECTOR = re.compile(r"前往|到|去|往|至")
_ROUTE_FROM_TO_EN = re.compile(
    r"\bfrom\s+(?P<origin>.+?)\s+to\s+(?P<destination>.+)", re.IGNORECASE
)
_ROUTE_TO_EN = re.compile(r"\s+to\s+", re.IGNORECASE)

_STATION_WORDS = re.compile(r"火車站|車站|[台臺]鐵站|\bmain\s+station\b", re.IGNORECASE)
_STATION_SUFFIX = re.compile(
    r"(?:火車站|車站|台鐵站|臺鐵站|站|\s+main\s+station|\s+station)$", re.IGNORECASE
)
_FILLERS_ZH = re.compile(
    r"請問|請|幫我|麻煩|我想要|我想|我要|我|想要|想|要|查詢|查一下|查|搜尋|找|"
    r"搭乘|乘坐|搭|坐|出發|回去|回|有沒有|有什麼|有哪些|哪些|什麼|"
    r"火車|列車|班次|車次|車票|的|嗎|呢|吧|啊|一下"
)
_FILLERS_EN = re.compile(
    r"\b(?:i|i'd|want|would|like|need|to go|go|please|show|me|find|get|take|"
    r"a|an|the|train|trains|what|are|is|there|any|leaving|leave|departing|depart|"
    r"at|on|in|around|about|by|after|before|for|from|until)\b",
    re.IGNORECASE,
)
_SEPARATORS = re.compile(r"[\s,，。.!！?？、;；:：]+")
_HAN = re.compile(r"[\u3400-\u9fff]")

# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

_DATE_FULL = re.compile(r"(?<!\d)(\d{4})[-/年](\d{1,2})[-/月](\d{1,2})[日號]?")
_DATE_MONTH_DAY = re.compile(r"(?<!\d)(\d{1,2})月(\d{1,2})[日號]")
_DATE_SLASH = re.compile(r"(?<![\d/])(\d{1,2})/(\d{1,2})(?![\d/])")
_WEEKDAY_ZH = re.compile(
    r"(?P<prefix>下個?|這個?|本)?(?:週|周|星期|禮拜)(?P<day>[一二三四五六日天])"
)
_WEEKDAY_EN = re.compile(
    r"\b(?P<prefix>next\s+|this\s+)?(?P<day>monday|mon|tuesday|tues|tue|wednesday|wed|thursday|thurs|thu|friday|fri|saturday|sat|sunday|sun)\b",
    re.IGNORECASE,
)
_MONTH_NAME = (
    r"(?:jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|"
    r"aug(?:ust)?|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
)
_DATE_MONTH_NAME = re.compile(
    rf"\b{_MONTH_NAME}\.?\s+\d{{1,2}}(?:st|nd|rd|th)?\b"
    rf"|\b\d{{1,2}}(?:st|nd|rd|th)?\s+(?:of\s+)?{_MONTH_NAME}\b",
    re.IGNORECASE,
)
_RELATIVE_DATE = re.compile(
    "|".join(re.escape(word) for word in RELATIVE_DAY_OFFSETS), re.IGNORECASE
)
_DATE_WORDS = re.compile(
    rf"{_DATE_FULL.pattern}|{_DATE_MONTH_DAY.pattern}|{_DATE_SLASH.pattern}"
    rf"|{_WEEKDAY_ZH.pattern.replace('?P<', '?P<zh_')}"
    rf"|{_WEEKDAY_EN.pattern.replace('?P<', '?P<en_')}"
    rf"|{_DATE_MONTH_NAME.pattern}|{_RELATIVE_DATE.pattern}|昨天|yesterday",
    re.IGNORECASE,
)

ZH_WEEKDAYS = {"一": 0, "二": 1, "三": 2, "四": 3, "五": 4, "六": 5, "日": 6, "天": 6}
EN_WEEKDAYS = {"mon": 0, "tue": 1, "wed": 2, "thu": 3, "fri": 4, "sat": 5, "sun": 6}

# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------

_PREF_FASTEST = re.compile(r"最快|快速|急行|特急|自強|\bfastest\b|\bquickest\b|\bexpress\b", re.I)
_PREF_CHEAPEST = re.compile(r"最便宜|便宜|省錢|經濟|\bcheapest\b|\bcheap\b", re.I)
_PREF_DIRECT = re.compile(r"直達|不換車|不轉車|\bdirect\b|\bnon-?stop\b", re.I)
_PREF_ALL_TYPES = re.compile(
    r"所有車種|全部車種|不限車種|所有車次|全部車次|\ball (?:train )?types\b|\ball trains\b|\bany train\b",
    re.I,
)
_PREF_TIME_WINDOW = re.compile(
    r"(?:接下來|未來|之後)\s*(?P<zh>\d{1,2}|[一二兩两三四五六七八九十]{1,3})\s*個?小時"
    r"|\bnext\s+(?P<en>\d{1,2})\s+hours?\b",
    re.I,
)
# Highest priority first
TRAIN_TYPE_KEYWORDS: Tuple[Tuple[str, re.Pattern[str]], ...] = (
    ("自強", re.compile(r"自強|tze[- ]?chiang", re.I)),
    ("普悠瑪", re.compile(r"普悠瑪|puyuma", re.I)),
    ("太魯閣", re.compile(r"太魯閣|taroko", re.I)),
    ("莒光", re.compile(r"莒光|chu[- ]?kuang", re.I)),
    ("復興", re.compile(r"復興|fu[- ]?hsing", re.I)),
    ("區間快", re.compile(r"區間快")),
    ("區間", re.compile(r"區間|\blocal train\b", re.I)),
)
_PREFERENCE_WORDS = re.compile(
    r"最快|快速|急行|特急|最便宜|便宜|省錢|經濟|直達|不換車|不轉車|"
    r"自強號?|普悠瑪號?|太魯閣號?|莒光號?|復興號?|區間快車?|區間車?|"
    r"所有車種|全部車種|不限車種|所有車次|全部車次|"
    rf"{_PREF_TIME_WINDOW.pattern.replace('?P<', '?P<w_')}|"
    r"\b(?:fastest|quickest|express|cheapest|cheap|direct|non-?stop|all trains|any train)\b",
    re.I,
)


@dataclass(frozen=True)
class _TrainMatch:
    number: str
    rule: str
    confidence: float
    is_pure: bool


def is_valid_for_train_search(query: ParsedQuery) -> bool:
    """True when the query names a train or both route endpoints.

    This is the only gate callers apply before resolution; it performs
    no lookup itself.
    """
    return bool(query.train_number) or bool(
        query.origin_text and query.destination_text
    )


@dataclass
class QueryParser:
    """Parses utterances into ParsedQuery objects.

    Implements QueryParserPort. Never raises on user input.

    Attributes:
        clock: Source of "today" for relative dates
        config: Parser limits
    """

    clock: ClockPort
    config: ParserConfig = field(default_factory=lambda: get_config().parser)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def parse(self, text: str) -> ParsedQuery:
        """Parse an utterance.

        Args:
            text: Raw user utterance.

        Returns:
            The parsed query; unset fields mean "not mentioned".
        """
        normalized = self.sanitize(text)
        result = ParsedQuery(raw_query=normalized)
        if not normalized:
            return result

        today = self.clock.today()

        train = self._extract_train_number(normalized)
        if train is not None:
            result.train_number = train.number
            result.is_partial_train_number = (
                self._digit_count(train.number) <= self.config.partial_train_digits
            )
            result.add_confidence(train.confidence)
            result.matched_rules.append(train.rule)
            if train.is_pure:
                return result
        else:
            route = self._extract_route(normalized)
            if route is not None:
                origin, destination, rule = route
                result.origin_text = origin
                result.destination_text = destination
                result.add_confidence(ROUTE_WEIGHT)
                result.matched_rules.append(rule)

        time_value = extract_time(normalized)
        if time_value:
            result.time = time_value
            result.add_confidence(TIME_WEIGHT)
            result.matched_rules.append("time")

        date_match = self._extract_date(normalized, today)
        if date_match is not None:
            resolved, rule = date_match
            result.date = resolved.isoformat()
            result.add_confidence(DATE_WEIGHT)
            result.matched_rules.append(rule)

        preferences = self._extract_preferences(normalized)
        if not preferences.is_empty:
            result.preferences = preferences
            result.add_confidence(PREFERENCES_WEIGHT)
            result.matched_rules.append("preferences")

        if result.has_route and (result.date or result.time):
            result.add_confidence(COMPLETE_BONUS)
            result.matched_rules.append("complete_query")

        self._logger.debug(
            "Query parsed",
            extra={
                "confidence": result.confidence,
                "rules": result.matched_rules,
            },
        )
        return result

    def sanitize(self, text: Optional[str]) -> str:
        """Strip control characters, collapse whitespace and truncate."""
        if not text:
            return ""
        cleaned = _CONTROL_CHARS.sub("", text)
        cleaned = _WHITESPACE.sub(" ", cleaned).strip()
        if len(cleaned) > self.config.max_query_length:
            self._logger.debug(
                "Query truncated",
                extra={"length": len(cleaned), "max": self.config.max_query_length},
            )
            cleaned = cleaned[: self.config.max_query_length].rstrip()
        return cleaned

    # -- train numbers ------------------------------------------------------

    @staticmethod
    def _digit_count(number: str) -> int:
        return sum(ch.isdigit() for ch in number)

    def _extract_train_number(self, text: str) -> Optional[_TrainMatch]:
        if _TRAIN_PURE.match(text):
            confidence = 0.9 if self._digit_count(text) >= 3 else 0.7
            return _TrainMatch(text.upper(), "train_number:pure", confidence, True)

        for pattern, rule, confidence in (
            (_TRAIN_WITH_TYPE, "train_number:typed", 0.8),
            (_TRAIN_WITH_SUFFIX, "train_number:suffix", 0.8),
            (_TRAIN_STATUS, "train_number:status", 0.7),
        ):
            match = pattern.search(text)
            if match:
                groups = match.groupdict()
                number = groups.get("number") or groups.get("en_number")
                if number:
                    return _TrainMatch(number.upper(), rule, confidence, False)
        return None

    # -- route --------------------------------------------------------------

    def _extract_route(self, text: str) -> Optional[Tuple[str, str, str]]:
        match = _ROUTE_FROM_TO.search(text)
        if match:
            sides = self._accept_sides(match.group("origin"), match.group("destination"))
            if sides:
                return (*sides, "route:from_to")

        for pattern, rule in (
            (_ROUTE_ARROW, "route:arrow"),
            (_ROUTE_ZH_CONNECTOR, "route:connector"),
        ):
            for connector in pattern.finditer(text):
                sides = self._accept_sides(
                    text[: connector.start()], text[connector.end() :]
                )
                if sides:
                    return (*sides, rule)

        match = _ROUTE_FROM_TO_EN.search(text)
        if match:
            sides = self._accept_sides(match.group("origin"), match.group("destination"))
            if sides:
                return (*sides, "route:from_to_en")

        for connector in _ROUTE_TO_EN.finditer(text):
            sides = self._accept_sides(text[: connector.start()], text[connector.end() :])
            if sides:
                return (*sides, "route:to_en")
        return None

    def _accept_sides(self, left: str, right: str) -> Optional[Tuple[str, str]]:
        origin = self._station_name(left, keep="last")
        destination = self._station_name(right, keep="first")
        if not origin or not destination:
            return None
        if origin.casefold() == destination.casefold():
            return None
        return origin, destination

    def _station_name(self, segment: str, keep: str) -> str:
        """Reduce one side of a connector to the station name it mentions."""
        cleaned = _STATION_WORDS.sub(" ", segment)
        cleaned = _DATE_WORDS.sub(" ", cleaned)
        cleaned = strip_time_expressions(cleaned)
        cleaned = _PREFERENCE_WORDS.sub(" ", cleaned)
        cleaned = _FILLERS_ZH.sub(" ", cleaned)
        cleaned = _FILLERS_EN.sub(" ", cleaned)

        chunks = [c for c in _SEPARATORS.split(cleaned) if c]
        if not chunks:
            return ""

        ordered = chunks if keep == "first" else list(reversed(chunks))
        if _HAN.search(ordered[0]):
            name = ordered[0]
        else:
            # Romanized names may span several words ("New Taipei")
            words: List[str] = []
            for chunk in ordered:
                if _HAN.search(chunk):
                    break
                words.append(chunk)
            if keep != "first":
                words.reverse()
            name = " ".join(words)

        return self._strip_station_suffix(name)

    @staticmethod
    def _strip_station_suffix(name: str) -> str:
        stripped = _STATION_SUFFIX.sub("", name).strip()
        return stripped or name.strip()

    # -- dates --------------------------------------------------------------

    def _extract_date(self, text: str, today: date) -> Optional[Tuple[date, str]]:
        extractors: Tuple[Tuple[str, Callable[[str, date], Optional[date]]], ...] = (
            ("date:absolute", self._absolute_date),
            ("date:month_day", self._month_day),
            ("date:slash", self._slash_date),
            ("date:relative", self._relative_date),
            ("date:weekday", self._weekday),
            ("date:month_name", self._month_name_date),
        )
        for rule, extractor in extractors:
            resolved = extractor(text, today)
            if resolved is not None:
                return resolved, rule
        return None

    @staticmethod
    def _absolute_date(text: str, today: date) -> Optional[date]:
        for match in _DATE_FULL.finditer(text):
            resolved = explicit_date(*(int(g) for g in match.groups()))
            if resolved:
                return resolved
        return None

    @staticmethod
    def _month_day(text: str, today: date) -> Optional[date]:
        for match in _DATE_MONTH_DAY.finditer(text):
            resolved = next_month_day(today, int(match.group(1)), int(match.group(2)))
            if resolved:
                return resolved
        return None

    @staticmethod
    def _slash_date(text: str, today: date) -> Optional[date]:
        for match in _DATE_SLASH.finditer(text):
            resolved = next_month_day(today, int(match.group(1)), int(match.group(2)))
            if resolved:
                return resolved
        return None

    @staticmethod
    def _relative_date(text: str, today: date) -> Optional[date]:
        match = _RELATIVE_DATE.search(text)
        if not match:
            return None
        return offset_date(today, RELATIVE_DAY_OFFSETS[match.group(0).lower()])

    @staticmethod
    def _weekday(text: str, today: date) -> Optional[date]:
        match = _WEEKDAY_ZH.search(text)
        if match:
            prefix = match.group("prefix") or ""
            return next_weekday(
                today, ZH_WEEKDAYS[match.group("day")], next_week=prefix.startswith("下")
            )

        match = _WEEKDAY_EN.search(text)
        if match:
            prefix = (match.group("prefix") or "").strip().lower()
            return next_weekday(
                today,
                EN_WEEKDAYS[match.group("day").lower()[:3]],
                next_week=prefix == "next",
            )
        return None

    @staticmethod
    def _month_name_date(text: str, today: date) -> Optional[date]:
        phrases = [m.group(0) for m in _DATE_MONTH_NAME.finditer(text)]
        if not phrases:
            return None
        dates = normalize_dates_en(phrases, today)
        return date.fromisoformat(dates[0]) if dates else None

    # -- preferences --------------------------------------------------------

    def _extract_preferences(self, text: str) -> SearchPreferences:
        preferences = SearchPreferences()

        if _PREF_FASTEST.search(text):
            preferences.fastest = True
        elif _PREF_CHEAPEST.search(text):
            preferences.cheapest = True

        if _PREF_DIRECT.search(text):
            preferences.direct_only = True

        for name, pattern in TRAIN_TYPE_KEYWORDS:
            if pattern.search(text):
                preferences.train_type = name
                if name == "自強":
                    preferences.fastest = True
                    preferences.cheapest = None
                break

        window = _PREF_TIME_WINDOW.search(text)
        if window:
            hours = chinese_to_int(window.group("zh") or window.group("en") or "")
            if hours is not None:
                preferences.time_window_hours = hours

        if _PREF_ALL_TYPES.search(text):
            preferences.include_all_train_types = True

        return preferences
