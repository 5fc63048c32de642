"""Train query service - Main orchestrator.

Runs one utterance through the whole core:

1. Parse the utterance
2. Either look up the train number, or
3. Resolve origin and destination to firm station matches
4. Fetch the day's timetable through the timetable port
5. Build journey options and filter them against the clock and live delays

Each way a query can stop short is a distinct outcome kind rather than
an exception, so a conversational front end can ask the user to clarify.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from ..config import AppConfig, get_config
from ..domain.models import (
    LiveDelayEntry,
    ParsedQuery,
    StationCandidate,
    TrainNumberSearch,
    TrainSearchResult,
)
from ..nlp.query_parser import is_valid_for_train_search
from ..ports.cache import CachePort
from ..ports.clock import ClockPort
from ..ports.nlp import QueryParserPort
from ..ports.resolution import StationResolverPort, TrainNumberResolverPort
from ..ports.timetable import TimetableSourcePort
from ..timetable.results import build_search_results
from ..timetable.temporal_filter import TemporalFilterEngine, index_delays

LIVE_DELAY_KEY = "live_delays:{station_id}"


class OutcomeKind(str, Enum):
    """How far a query got through the pipeline."""

    INCOMPLETE = "incomplete"
    STATION_NOT_FOUND = "station_not_found"
    AMBIGUOUS_STATION = "ambiguous_station"
    TRAIN_CANDIDATES = "train_candidates"
    TRAINS = "trains"


@dataclass(frozen=True)
class QueryOutcome:
    """Result of answering one utterance.

    Attributes:
        kind: Outcome kind
        parsed: The parsed query
        origin: Firm origin match (TRAINS only)
        destination: Firm destination match (TRAINS only)
        candidates: Station candidates to choose from (AMBIGUOUS_STATION)
        unresolved_text: The station mention that failed to resolve
        train_search: Train-number lookup result (TRAIN_CANDIDATES)
        trains: Filtered journey options (TRAINS)
        service_date: Date the timetable was fetched for
    """

    kind: OutcomeKind
    parsed: ParsedQuery
    origin: Optional[StationCandidate] = None
    destination: Optional[StationCandidate] = None
    candidates: Tuple[StationCandidate, ...] = ()
    unresolved_text: Optional[str] = None
    train_search: Optional[TrainNumberSearch] = None
    trains: Tuple[TrainSearchResult, ...] = ()
    service_date: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.kind in (OutcomeKind.TRAINS, OutcomeKind.TRAIN_CANDIDATES)


@dataclass
class TrainQueryService:
    """Answers free-form train queries.

    Attributes:
        parser: Turns utterances into ParsedQuery objects
        station_resolver: Resolves station mentions (built directory)
        train_resolver: Looks up train numbers
        timetable_source: Provides timetable rows and live delay boards
        filter_engine: Applies the time window, delays and backfill
        clock: Source of "today" for the default service date
        cache: Holds live delay boards per station
        config: Application configuration

    Example:
        service = get_container().resolve(TrainQueryService)
        outcome = service.answer("台北到台中明天早上八點")
    """

    parser: QueryParserPort
    station_resolver: StationResolverPort
    train_resolver: TrainNumberResolverPort
    timetable_source: TimetableSourcePort
    filter_engine: TemporalFilterEngine
    clock: ClockPort
    cache: CachePort[Dict[str, LiveDelayEntry]]
    config: AppConfig = field(default_factory=get_config)

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def answer(self, text: str) -> QueryOutcome:
        """Answer one utterance.

        Args:
            text: Raw user utterance.

        Returns:
            The outcome; only TRAINS carries journey options.

        Raises:
            IndexNotReadyError: If the station directory was never built.
            TimetableUnavailableError: If the timetable source cannot serve
                the resolved route.
        """
        parsed = self.parser.parse(text)
        self._logger.info(
            "Query parsed",
            extra={"confidence": parsed.confidence, "rules": parsed.matched_rules},
        )

        if parsed.is_train_number_query:
            return self._answer_train_number(parsed)

        if (
            not is_valid_for_train_search(parsed)
            or parsed.confidence < self.config.parser.min_confidence
        ):
            self._logger.info(
                "Query incomplete",
                extra={
                    "origin": parsed.origin_text,
                    "destination": parsed.destination_text,
                },
            )
            return QueryOutcome(kind=OutcomeKind.INCOMPLETE, parsed=parsed)

        origin = self._resolve_station(parsed, parsed.origin_text or "")
        if isinstance(origin, QueryOutcome):
            return origin
        destination = self._resolve_station(parsed, parsed.destination_text or "")
        if isinstance(destination, QueryOutcome):
            return destination

        if origin.station_id == destination.station_id:
            self._logger.info(
                "Origin and destination resolve to the same station",
                extra={"station_id": origin.station_id},
            )
            return QueryOutcome(
                kind=OutcomeKind.INCOMPLETE,
                parsed=parsed,
                origin=origin,
                destination=destination,
            )

        return self._answer_route(parsed, origin, destination)

    def _answer_train_number(self, parsed: ParsedQuery) -> QueryOutcome:
        search = self.train_resolver.search(
            parsed.train_number or "", partial=parsed.is_partial_train_number
        )
        self._logger.info(
            "Train number searched",
            extra={
                "query": search.query,
                "strategy": search.strategy.value,
                "candidates": len(search.candidates),
                "requires_disambiguation": search.requires_disambiguation,
            },
        )
        return QueryOutcome(
            kind=OutcomeKind.TRAIN_CANDIDATES,
            parsed=parsed,
            train_search=search,
        )

    def _resolve_station(
        self, parsed: ParsedQuery, text: str
    ) -> Union[StationCandidate, QueryOutcome]:
        candidates = self.station_resolver.resolve(text)
        if not candidates:
            self._logger.info("Station not found", extra={"text": text})
            return QueryOutcome(
                kind=OutcomeKind.STATION_NOT_FOUND,
                parsed=parsed,
                unresolved_text=text,
            )
        if not self.station_resolver.is_firm_match(candidates):
            self._logger.info(
                "Station ambiguous",
                extra={
                    "text": text,
                    "candidates": [c.station_id for c in candidates],
                },
            )
            return QueryOutcome(
                kind=OutcomeKind.AMBIGUOUS_STATION,
                parsed=parsed,
                candidates=tuple(candidates),
                unresolved_text=text,
            )
        return candidates[0]

    def _answer_route(
        self,
        parsed: ParsedQuery,
        origin: StationCandidate,
        destination: StationCandidate,
    ) -> QueryOutcome:
        today = self.clock.today().isoformat()
        service_date = parsed.date or today

        rows = self.timetable_source.fetch_timetable(
            origin.station_id, destination.station_id, service_date
        )
        filter_config = self.config.filter
        results = build_search_results(
            rows,
            origin.station_id,
            destination.station_id,
            restricted_types=filter_config.restricted_train_types,
            max_travel_hours=filter_config.max_travel_hours,
            limit=filter_config.max_trains_per_result,
        )

        # Live boards only describe today's running trains
        delays = self.live_delays(origin.station_id) if service_date == today else {}

        trains = self.filter_engine.filter(
            results,
            parsed.preferences,
            target_date=parsed.date,
            target_time=parsed.time,
            live_delays=delays,
        )
        self._logger.info(
            "Route answered",
            extra={
                "origin_id": origin.station_id,
                "destination_id": destination.station_id,
                "date": service_date,
                "rows": len(rows),
                "results": len(results),
                "returned": len(trains),
            },
        )
        return QueryOutcome(
            kind=OutcomeKind.TRAINS,
            parsed=parsed,
            origin=origin,
            destination=destination,
            trains=tuple(trains),
            service_date=service_date,
        )

    def live_delays(self, station_id: str) -> Dict[str, LiveDelayEntry]:
        """Live delay board for a station, keyed by train number.

        Boards are cached for the configured TTL. A failing fetch is logged
        and yields an empty board; results are then shown without delays.
        """
        key = LIVE_DELAY_KEY.format(station_id=station_id)
        try:
            return self.cache.get_or_compute(
                key,
                lambda: index_delays(self.timetable_source.fetch_live_delays(station_id)),
            )
        except Exception as e:
            self._logger.warning(
                "Live delay fetch failed, continuing without delays",
                extra={"station_id": station_id, "error": str(e)},
            )
            return {}

