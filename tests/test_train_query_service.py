"""End-to-end tests for the query service.

The station directory and train catalog are the packaged data files; the
timetable comes from an in-memory source. The clock reads Friday
2024-10-25 07:30.
"""

import logging
from unittest.mock import MagicMock

import pytest

from tra_query.adapters.cache import InMemoryCache, NullCache
from tra_query.adapters.timetable import StaticTimetableSource
from tra_query.config import AppConfig, ParserConfig
from tra_query.domain.errors import TimetableUnavailableError
from tra_query.domain.models import LiveDelayEntry, MatchStrategy, RawTimetableRow, StopTime
from tra_query.services import OutcomeKind, TrainQueryService


def row(train_no, code, name, stops):
    return RawTimetableRow(
        train_no=train_no,
        train_type_code=code,
        train_type_name=name,
        stops=tuple(
            StopTime(station_id=sid, stop_sequence=seq, arrival_time=t, departure_time=t)
            for seq, (sid, t) in enumerate(stops, start=1)
        ),
    )


ROWS = [
    row("152", "4", "莒光號", [("1000", "07:40"), ("1020", "07:48"), ("3300", "09:30")]),
    row("1121", "6", "區間車", [("1000", "08:10"), ("3300", "10:40")]),
    row("2", "2", "普悠瑪號", [("1000", "08:00"), ("3300", "09:38")]),
    row("1234", "6", "區間車", [("1000", "09:00"), ("3300", "11:30")]),
    # Southbound-to-northbound train, wrong direction
    row("99", "6", "區間車", [("3300", "07:50"), ("1000", "09:30")]),
]


@pytest.fixture
def source():
    return MagicMock(
        wraps=StaticTimetableSource(
            timetables={"*": ROWS},
            live_delays={"1000": [LiveDelayEntry("152", 5, "delayed")]},
        )
    )


@pytest.fixture
def make_service(parser, station_index, train_resolver, filter_engine, clock):
    def factory(source, cache=None, config=None):
        return TrainQueryService(
            parser=parser,
            station_resolver=station_index,
            train_resolver=train_resolver,
            timetable_source=source,
            filter_engine=filter_engine,
            clock=clock,
            cache=cache if cache is not None else InMemoryCache(default_ttl_seconds=120),
            config=config or AppConfig(),
        )

    return factory


@pytest.fixture
def service(make_service, source):
    return make_service(source)


class TestRouteQueries:
    def test_route_returns_monthly_pass_trains(self, service):
        outcome = service.answer("台北到台中")

        assert outcome.kind is OutcomeKind.TRAINS
        assert outcome.is_success
        assert outcome.origin.station_id == "1000"
        assert outcome.destination.station_id == "3300"
        assert outcome.service_date == "2024-10-25"
        assert [t.train_no for t in outcome.trains] == ["152", "1121", "1234"]

    def test_live_delay_merged(self, service):
        outcome = service.answer("台北到台中")

        first = outcome.trains[0]
        assert first.delay_minutes == 5
        assert first.adjusted_departure_time == "07:45"
        assert first.minutes_until_departure == 15
        assert first.is_imminent is True

    def test_explicit_time(self, service):
        outcome = service.answer("台北到台中早上九點")

        assert outcome.parsed.time == "09:00"
        # 152 leaves before the 08:00 window start; Puyuma 2 fills the gap
        assert [t.train_no for t in outcome.trains] == ["2", "1121", "1234"]
        assert [t.is_backup_option for t in outcome.trains] == [True, False, False]

    def test_future_date_skips_live_board(self, service, source):
        outcome = service.answer("台北到台中明天")

        assert outcome.service_date == "2024-10-26"
        assert outcome.kind is OutcomeKind.TRAINS
        source.fetch_live_delays.assert_not_called()
        source.fetch_timetable.assert_called_once_with("1000", "3300", "2024-10-26")
        assert all(t.delay_minutes is None for t in outcome.trains)

    @pytest.mark.parametrize(
        "text, service_date",
        [
            ("Taipei to Taichung tomorrow at 8am", "2024-10-26"),
            ("Taipei to Taichung on Friday", "2024-11-01"),
        ],
    )
    def test_english_phrasing_resolves_firmly(self, service, text, service_date):
        outcome = service.answer(text)

        assert outcome.kind is OutcomeKind.TRAINS
        assert outcome.origin.station_id == "1000"
        assert outcome.destination.station_id == "3300"
        assert outcome.service_date == service_date
        assert [t.train_no for t in outcome.trains] == ["152", "1121", "1234"]

    def test_train_type_preference(self, service):
        outcome = service.answer("台北到台中普悠瑪")

        assert [t.train_no for t in outcome.trains] == ["2"]

    def test_unavailable_timetable_propagates(self, make_service):
        service = make_service(StaticTimetableSource())

        with pytest.raises(TimetableUnavailableError) as exc_info:
            service.answer("台北到台中")
        assert exc_info.value.date == "2024-10-25"


class TestStopsShort:
    def test_missing_destination(self, service, source):
        outcome = service.answer("明天早上")

        assert outcome.kind is OutcomeKind.INCOMPLETE
        assert not outcome.is_success
        source.fetch_timetable.assert_not_called()

    def test_low_confidence_gate(self, make_service, source):
        service = make_service(source, config=AppConfig(parser=ParserConfig(min_confidence=0.5)))

        assert service.answer("台北到台中").kind is OutcomeKind.INCOMPLETE

    def test_unknown_station(self, service):
        outcome = service.answer("火星到台中")

        assert outcome.kind is OutcomeKind.STATION_NOT_FOUND
        assert outcome.unresolved_text == "火星"

    def test_ambiguous_station(self, service, source):
        outcome = service.answer("台到台中")

        assert outcome.kind is OutcomeKind.AMBIGUOUS_STATION
        assert outcome.unresolved_text == "台"
        assert len(outcome.candidates) == 4
        source.fetch_timetable.assert_not_called()

    def test_same_station_both_ends(self, service):
        outcome = service.answer("台北到北車")

        assert outcome.kind is OutcomeKind.INCOMPLETE
        assert outcome.origin.station_id == outcome.destination.station_id == "1000"


class TestTrainNumbers:
    def test_exact_train_number(self, service, source):
        outcome = service.answer("152")

        assert outcome.kind is OutcomeKind.TRAIN_CANDIDATES
        assert outcome.train_search.strategy is MatchStrategy.EXACT
        assert not outcome.train_search.requires_disambiguation
        source.fetch_timetable.assert_not_called()

    def test_partial_train_number(self, service):
        outcome = service.answer("2")

        assert outcome.train_search.strategy is MatchStrategy.PREFIX
        assert [c.train_no for c in outcome.train_search.candidates] == ["2", "22"]


class TestLiveDelays:
    def test_board_cached_between_queries(self, service, source):
        service.answer("台北到台中")
        service.answer("台北到台中")

        source.fetch_live_delays.assert_called_once_with("1000")

    def test_null_cache_fetches_every_time(self, make_service, source):
        service = make_service(source, cache=NullCache())

        service.answer("台北到台中")
        service.answer("台北到台中")

        assert source.fetch_live_delays.call_count == 2

    def test_fetch_failure_degrades_to_no_delays(self, service, source, caplog):
        source.fetch_live_delays.side_effect = RuntimeError("upstream down")

        with caplog.at_level(logging.WARNING, logger="tra_query.services.train_query_service"):
            outcome = service.answer("台北到台中")

        assert outcome.kind is OutcomeKind.TRAINS
        assert all(t.delay_minutes is None for t in outcome.trains)
        assert "Live delay fetch failed" in caplog.text

    def test_live_delays_keyed_by_train(self, service):
        board = service.live_delays("1000")

        assert set(board) == {"152"}
        assert board["152"].delay_minutes == 5
