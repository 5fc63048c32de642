"""Domain models for the railway query core.

Directory records, candidates and timetable results are frozen dataclasses
with slots; later pipeline stages derive new instances with
``dataclasses.replace`` instead of mutating. ``ParsedQuery`` is the one
mutable builder, filled in step by step by the parser.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class MatchStrategy(str, Enum):
    """Which train-number matching strategy produced the candidates."""

    EXACT = "exact"
    PREFIX = "prefix"
    FUZZY = "fuzzy"


class Popularity(str, Enum):
    """Usage-frequency bucket of a catalog train."""

    HOT = "hot"
    NORMAL = "normal"
    RARE = "rare"


@dataclass(frozen=True, slots=True)
class GeoLocation:
    """GPS coordinates representing a geographic location."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        """Validate coordinate ranges."""
        if not -90 <= self.latitude <= 90:
            raise ValueError(
                f"Latitude must be between -90 and 90, got {self.latitude}"
            )
        if not -180 <= self.longitude <= 180:
            raise ValueError(
                f"Longitude must be between -180 and 180, got {self.longitude}"
            )


@dataclass(frozen=True, slots=True)
class StationRecord:
    """A railway station as published by the upstream directory.

    Attributes:
        id: Upstream station identifier (e.g., '1000')
        name_local: Chinese station name (e.g., '臺北')
        name_romanized: Romanized station name (e.g., 'Taipei')
        address: Optional street address
        location: Optional GPS coordinates
    """

    id: str
    name_local: str
    name_romanized: str
    address: Optional[str] = None
    location: Optional[GeoLocation] = None


@dataclass(frozen=True, slots=True)
class StationCandidate:
    """A ranked station match for one resolution call."""

    station_id: str
    display_name: str
    confidence: float
    name_romanized: str = ""
    address: Optional[str] = None
    location: Optional[GeoLocation] = None


@dataclass(frozen=True, slots=True)
class TrainCatalogEntry:
    """A known train number with its headline schedule.

    Attributes:
        train_no: Train number as printed on the timetable
        train_type_code: Upstream train type code
        train_type_name: Display name of the train type
        origin_name: Name of the starting station
        destination_name: Name of the terminal station
        departure_time: Departure from the starting station, 'HH:MM'
        popularity: Usage-frequency bucket
        tags: Free-form labels (e.g., night train, commuter)
    """

    train_no: str
    train_type_code: str = ""
    train_type_name: str = ""
    origin_name: str = ""
    destination_name: str = ""
    departure_time: str = ""
    popularity: Popularity = Popularity.NORMAL
    tags: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class TrainCandidate:
    """A catalog train matched against a (possibly partial) token."""

    entry: TrainCatalogEntry
    confidence: float

    @property
    def train_no(self) -> str:
        return self.entry.train_no


@dataclass(frozen=True, slots=True)
class TrainNumberSearch:
    """Result of a train-number lookup.

    Attributes:
        query: The normalized token that was searched
        strategy: The strategy that produced the candidates
        candidates: Ranked candidates, best first
        requires_disambiguation: True when the caller must let the user
            pick among the candidates instead of taking the first one
    """

    query: str
    strategy: MatchStrategy
    candidates: tuple[TrainCandidate, ...] = field(default_factory=tuple)
    requires_disambiguation: bool = True


@dataclass(slots=True)
class SearchPreferences:
    """Every option a query can carry, each optional.

    Attributes:
        fastest: Prefer the fastest trains
        cheapest: Prefer the cheapest trains
        direct_only: Only trains with no intermediate stops
        train_type: A specific train type keyword (e.g., '自強')
        time_window_hours: "Next N hours" window, clamped by the filter
        include_all_train_types: Do not apply the monthly-pass filter
    """

    fastest: Optional[bool] = None
    cheapest: Optional[bool] = None
    direct_only: Optional[bool] = None
    train_type: Optional[str] = None
    time_window_hours: Optional[int] = None
    include_all_train_types: Optional[bool] = None

    @property
    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (
                self.fastest,
                self.cheapest,
                self.direct_only,
                self.train_type,
                self.time_window_hours,
                self.include_all_train_types,
            )
        )


@dataclass(slots=True)
class ParsedQuery:
    """Structured view of one utterance.

    Created once per utterance by the parser; never persisted.
    """

    raw_query: str = ""
    origin_text: Optional[str] = None
    destination_text: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    train_number: Optional[str] = None
    is_partial_train_number: bool = False
    preferences: SearchPreferences = field(default_factory=SearchPreferences)
    confidence: float = 0.0
    matched_rules: List[str] = field(default_factory=list)

    @property
    def has_route(self) -> bool:
        return bool(self.origin_text and self.destination_text)

    @property
    def is_train_number_query(self) -> bool:
        """True when the utterance names a train and no route."""
        return bool(self.train_number) and not self.has_route

    def add_confidence(self, increment: float) -> None:
        """Accumulate a rule's confidence increment, capped at 1.0."""
        self.confidence = min(1.0, round(self.confidence + increment, 4))


@dataclass(frozen=True, slots=True)
class StopTime:
    """One stop of a timetable row."""

    station_id: str
    stop_sequence: int
    arrival_time: str = ""
    departure_time: str = ""


@dataclass(frozen=True, slots=True)
class RawTimetableRow:
    """One train's timetable for a service date, as fetched upstream."""

    train_no: str
    train_type_code: str
    stops: tuple[StopTime, ...]
    train_type_name: str = ""


@dataclass(frozen=True, slots=True)
class LiveDelayEntry:
    """Live delay information for one train at one station."""

    train_no: str
    delay_minutes: Optional[int]
    status: str = ""


@dataclass(frozen=True, slots=True)
class TrainSearchResult:
    """A journey option for one (train, origin, destination) triple.

    Timing/status fields are ``None`` until temporal filtering fills them;
    for dates other than today they stay ``None`` because they carry no
    meaning there.
    """

    train_no: str
    train_type: str
    departure_time: str
    arrival_time: str
    travel_time_minutes: int
    intermediate_stop_count: int
    is_monthly_pass_eligible: bool
    train_type_code: str = ""

    minutes_until_departure: Optional[int] = None
    has_departed: Optional[bool] = None
    is_imminent: Optional[bool] = None
    is_backup_option: bool = False

    delay_minutes: Optional[int] = None
    adjusted_departure_time: Optional[str] = None
    adjusted_arrival_time: Optional[str] = None
    train_status: Optional[str] = None


@dataclass(frozen=True, slots=True)
class TimeWindow:
    """The instant range a filter pass keeps departures from.

    Attributes:
        base: The instant the window is centred on
        min_time: Earliest kept departure (base minus lookback)
        max_time: Latest kept departure (base plus the window)
        now: Current local time used for status annotation
        is_today: Whether base falls on the current local date
        reference_date: The explicit service date, if the caller gave one
        fallback_reason: Why explicit input was rejected, if it was
    """

    base: datetime
    min_time: datetime
    max_time: datetime
    now: datetime
    is_today: bool
    reference_date: Optional[str] = None
    fallback_reason: Optional[str] = None

    def contains(self, instant: datetime) -> bool:
        return self.min_time <= instant <= self.max_time
