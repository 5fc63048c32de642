"""Time-window filtering, delay reconciliation and backfill of journey options.

One ``filter`` call runs these steps over a day's search results:

1. Resolve the base instant from the optional target date/time (invalid
   input falls back to now, logged).
2. Build the window ``[base - lookback, base + N hours]``.
3. Anchor every bare ``HH:MM[:SS]`` departure to a concrete datetime.
4. Drop rows outside the window, non-direct rows when direct trains were
   asked for, and rows of the wrong train type when one was named.
5. Merge live delays and, for today only, annotate departure status and
   drop trains that have already left.
6. Rank by departure and backfill a thin primary set with trains the
   monthly pass does not cover.
"""

from __future__ import annotations

import calendar
import logging
import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..config import FilterConfig, get_config
from ..domain.errors import TemporalInputError
from ..domain.models import (
    LiveDelayEntry,
    SearchPreferences,
    TimeWindow,
    TrainSearchResult,
)
from ..ports.clock import ClockPort
from .time_utils import add_minutes, parse_clock

_DATE_INPUT = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_TIME_INPUT = re.compile(r"^(\d{1,2}):(\d{1,2})(?::(\d{1,2}))?$")

MIN_YEAR = 1970
MAX_YEAR = 2100

_Ranked = Tuple[datetime, TrainSearchResult]


def validate_date(value: str) -> date:
    """Validate a 'YYYY-MM-DD' string component by component.

    Raises:
        TemporalInputError: If the format or any component is out of range.
    """
    match = _DATE_INPUT.match((value or "").strip())
    if not match:
        raise TemporalInputError(
            f"Malformed date: {value!r}", field_name="date", value=str(value)
        )
    year, month, day = (int(part) for part in match.groups())
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise TemporalInputError(
            f"Year out of range: {year}", field_name="date", value=value
        )
    if not 1 <= month <= 12:
        raise TemporalInputError(
            f"Month out of range: {month}", field_name="date", value=value
        )
    if not 1 <= day <= calendar.monthrange(year, month)[1]:
        raise TemporalInputError(
            f"Day out of range: {day}", field_name="date", value=value
        )
    return date(year, month, day)


def validate_time(value: str) -> Tuple[int, int]:
    """Validate an 'HH:MM[:SS]' string and return (hour, minute).

    Raises:
        TemporalInputError: If the format or any component is out of range.
    """
    match = _TIME_INPUT.match((value or "").strip())
    if not match:
        raise TemporalInputError(
            f"Malformed time: {value!r}", field_name="time", value=str(value)
        )
    hour, minute = int(match.group(1)), int(match.group(2))
    second = int(match.group(3)) if match.group(3) else 0
    if not 0 <= hour <= 23:
        raise TemporalInputError(
            f"Hour out of range: {hour}", field_name="time", value=value
        )
    if not 0 <= minute <= 59 or not 0 <= second <= 59:
        raise TemporalInputError(
            f"Minute out of range: {minute}", field_name="time", value=value
        )
    return hour, minute


def matches_train_type(requested: str, train_type: str) -> bool:
    """Whether a train type name is the requested type.

    The name must be the keyword itself with an optional 號/車 suffix,
    either whole or inside parentheses ("自強(普悠瑪)"). 區間 therefore
    matches 區間車 but not 區間快車.
    """
    pattern = rf"(?:^|[(（]){re.escape(requested)}[號車]?(?:$|[)）(（\s])"
    return re.search(pattern, train_type.strip()) is not None


def index_delays(entries: Iterable[LiveDelayEntry]) -> Dict[str, LiveDelayEntry]:
    """Key live delay entries by train number; later entries win."""
    return {entry.train_no: entry for entry in entries}


@dataclass
class TemporalFilterEngine:
    """Filters and ranks journey options relative to now or a target instant.

    Attributes:
        clock: Source of the current local time
        config: Filter configuration (windows, thresholds, result limits)

    Example:
        engine = TemporalFilterEngine(clock=SystemClock())
        engine.filter(results, parsed.preferences, parsed.date, parsed.time)
    """

    clock: ClockPort
    config: FilterConfig = field(default_factory=lambda: get_config().filter)

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    # -- window ---------------------------------------------------------------

    def compute_window(
        self,
        preferences: Optional[SearchPreferences] = None,
        target_date: Optional[str] = None,
        target_time: Optional[str] = None,
    ) -> TimeWindow:
        """Compute the departure window for one filter pass.

        Args:
            preferences: Supplies the optional "next N hours" override.
            target_date: Requested service date, 'YYYY-MM-DD'.
            target_time: Requested departure time, 'HH:MM'.

        Returns:
            The window. When the date or time is invalid the window is
            centred on now and ``fallback_reason`` says why.
        """
        now = self.clock.now()
        fallback_reason = None
        try:
            base, reference_date = self._resolve_base(now, target_date, target_time)
        except TemporalInputError as e:
            self._logger.warning(
                "Invalid temporal input, falling back to current time",
                extra={"field": e.field_name, "value": e.value, "reason": e.message},
            )
            base, reference_date = now, None
            fallback_reason = e.message

        hours = self._window_hours(preferences)
        return TimeWindow(
            base=base,
            min_time=base - timedelta(hours=self.config.lookback_hours),
            max_time=base + timedelta(hours=hours),
            now=now,
            is_today=base.date() == now.date(),
            reference_date=reference_date.isoformat() if reference_date else None,
            fallback_reason=fallback_reason,
        )

    def _resolve_base(
        self,
        now: datetime,
        target_date: Optional[str],
        target_time: Optional[str],
    ) -> Tuple[datetime, Optional[date]]:
        day = validate_date(target_date) if target_date else None
        clock = validate_time(target_time) if target_time else None

        if day and clock:
            hour, minute = clock
            return datetime(day.year, day.month, day.day, hour, minute, tzinfo=now.tzinfo), day
        if day:
            return now.replace(year=day.year, month=day.month, day=day.day), day
        if clock:
            hour, minute = clock
            base = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
            return self._roll_past_midnight(base, now), None
        return now, None

    def _roll_past_midnight(self, anchored: datetime, now: datetime) -> datetime:
        """Move a time already behind the clock to tomorrow when it looks like
        an after-midnight time: early morning asked late in the evening, or a
        gap too large to be something that just happened."""
        if anchored >= now:
            return anchored
        late_night = (
            anchored.hour < self.config.early_morning_end_hour
            and now.hour >= self.config.late_clock_hour
        )
        if late_night or now - anchored > timedelta(hours=self.config.next_day_gap_hours):
            return anchored + timedelta(days=1)
        return anchored

    def _window_hours(self, preferences: Optional[SearchPreferences]) -> int:
        requested = preferences.time_window_hours if preferences else None
        if requested is None:
            return self.config.default_window_hours
        return max(self.config.min_window_hours, min(self.config.max_window_hours, requested))

    # -- anchoring ------------------------------------------------------------

    def parse_train_time(self, value: str, window: TimeWindow) -> datetime:
        """Anchor a bare timetable time to a concrete local datetime.

        With an explicit reference date the time is placed on that date.
        Otherwise it is placed on today, and a time already behind the
        clock is moved to tomorrow when it looks like an after-midnight
        departure: an early-morning time asked about late in the evening,
        or a gap too large to be a train that just left.

        Raises:
            ValueError: If the value is not a clock time.
        """
        hour, minute, second = parse_clock(value)
        now = window.now
        anchor = date.fromisoformat(window.reference_date) if window.reference_date else now.date()
        anchored = datetime(
            anchor.year, anchor.month, anchor.day, hour, minute, second or 0, tzinfo=now.tzinfo
        )
        if window.reference_date:
            return anchored
        # Trains that left within the last hours stay on today
        return self._roll_past_midnight(anchored, now)

    # -- filtering ------------------------------------------------------------

    def filter(
        self,
        results: Sequence[TrainSearchResult],
        preferences: Optional[SearchPreferences] = None,
        target_date: Optional[str] = None,
        target_time: Optional[str] = None,
        live_delays: Optional[Mapping[str, LiveDelayEntry]] = None,
        max_results: Optional[int] = None,
    ) -> List[TrainSearchResult]:
        """Filter, annotate and rank journey options.

        Args:
            results: Unfiltered results for one route and service date.
            preferences: Parsed search preferences.
            target_date: Requested service date, 'YYYY-MM-DD'.
            target_time: Requested departure time, 'HH:MM'.
            live_delays: Live delay entries keyed by train number.
            max_results: Size of the primary set (config default when None).

        Returns:
            Primary results followed by any backfilled backups, all in
            departure order. Backups carry ``is_backup_option=True``.
        """
        prefs = preferences or SearchPreferences()
        window = self.compute_window(prefs, target_date, target_time)
        limit = self.config.max_results if max_results is None else max_results
        delays = live_delays or {}
        include_all = bool(prefs.include_all_train_types)

        primary: List[_Ranked] = []
        backups: List[_Ranked] = []
        for result in results:
            try:
                departure = self.parse_train_time(result.departure_time, window)
                annotated = self._merge_delay(result, delays.get(result.train_no))
            except ValueError:
                self._logger.warning(
                    "Dropping result with malformed time",
                    extra={
                        "train_no": result.train_no,
                        "departure": result.departure_time,
                        "arrival": result.arrival_time,
                    },
                )
                continue

            if not window.contains(departure):
                continue
            if prefs.direct_only and result.intermediate_stop_count > 0:
                continue
            if prefs.train_type and not matches_train_type(prefs.train_type, result.train_type):
                continue

            if window.is_today:
                annotated = self._annotate_status(annotated, departure, window.now)
                if annotated.has_departed:
                    continue

            if include_all or prefs.train_type or result.is_monthly_pass_eligible:
                primary.append((departure, annotated))
            else:
                backups.append((departure, annotated))

        ranked = self._rank(primary, backups, limit, include_all)
        self._logger.debug(
            "Temporal filter applied",
            extra={
                "input": len(results),
                "primary": len(primary),
                "backups_available": len(backups),
                "returned": len(ranked),
                "window_start": window.min_time.isoformat(),
                "window_end": window.max_time.isoformat(),
                "is_today": window.is_today,
            },
        )
        return ranked

    def _rank(
        self,
        primary: List[_Ranked],
        backups: List[_Ranked],
        limit: int,
        include_all: bool,
    ) -> List[TrainSearchResult]:
        def by_departure(item: _Ranked) -> Tuple[datetime, str]:
            return item[0], item[1].train_no

        chosen = sorted(primary, key=by_departure)[: max(0, limit)]
        if len(chosen) < self.config.backfill_threshold and not include_all:
            shortfall = max(0, limit - len(chosen))
            chosen += [
                (departure, replace(result, is_backup_option=True))
                for departure, result in sorted(backups, key=by_departure)[:shortfall]
            ]
        return [result for _, result in sorted(chosen, key=by_departure)]

    @staticmethod
    def _merge_delay(
        result: TrainSearchResult, entry: Optional[LiveDelayEntry]
    ) -> TrainSearchResult:
        if entry is None:
            return result
        status = entry.status or None
        if entry.delay_minutes is None:
            return replace(result, train_status=status)
        return replace(
            result,
            delay_minutes=entry.delay_minutes,
            adjusted_departure_time=add_minutes(result.departure_time, entry.delay_minutes),
            adjusted_arrival_time=add_minutes(result.arrival_time, entry.delay_minutes),
            train_status=status,
        )

    def _annotate_status(
        self, result: TrainSearchResult, departure: datetime, now: datetime
    ) -> TrainSearchResult:
        effective = departure + timedelta(minutes=result.delay_minutes or 0)
        minutes_until = int((effective - now).total_seconds() // 60)
        departed = effective < now
        return replace(
            result,
            minutes_until_departure=minutes_until,
            has_departed=departed,
            is_imminent=not departed and minutes_until <= self.config.imminent_minutes,
        )
