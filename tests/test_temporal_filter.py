"""Tests for the temporal filter engine.

The shared clock reads Friday 2024-10-25 07:30 in Asia/Taipei, so the
default window is 06:30 to 09:30.
"""

from datetime import datetime, timedelta

import pytest

from tra_query.adapters.clock import FixedClock
from tra_query.config import FilterConfig
from tra_query.domain.errors import TemporalInputError
from tra_query.domain.models import LiveDelayEntry, SearchPreferences, TrainSearchResult
from tra_query.timetable import TemporalFilterEngine
from tra_query.timetable.temporal_filter import (
    index_delays,
    matches_train_type,
    validate_date,
    validate_time,
)


def result(train_no, departure, eligible=True, stops=0, train_type="區間車", arrival=None):
    return TrainSearchResult(
        train_no=train_no,
        train_type=train_type,
        departure_time=departure,
        arrival_time=arrival or departure,
        travel_time_minutes=60,
        intermediate_stop_count=stops,
        is_monthly_pass_eligible=eligible,
    )


def engine_at(*args, **config):
    return TemporalFilterEngine(
        clock=FixedClock(datetime(*args)), config=FilterConfig(**config)
    )


def numbers(results):
    return [r.train_no for r in results]


class TestValidators:
    def test_valid_date(self):
        assert validate_date("2024-02-29").isoformat() == "2024-02-29"

    @pytest.mark.parametrize(
        "value", ["2023-02-29", "2024-13-01", "1969-01-01", "2024/10/25", "", "2024-04-31"]
    )
    def test_invalid_date(self, value):
        with pytest.raises(TemporalInputError) as exc_info:
            validate_date(value)
        assert exc_info.value.field_name == "date"

    def test_valid_time(self):
        assert validate_time("08:05") == (8, 5)
        assert validate_time("23:59:59") == (23, 59)

    @pytest.mark.parametrize("value", ["24:00", "12:60", "12:00:61", "noon"])
    def test_invalid_time(self, value):
        with pytest.raises(TemporalInputError) as exc_info:
            validate_time(value)
        assert exc_info.value.field_name == "time"


class TestWindow:
    def test_default_window_around_now(self, filter_engine, clock):
        window = filter_engine.compute_window()

        assert window.base == clock.now()
        assert window.min_time == clock.now() - timedelta(hours=1)
        assert window.max_time == clock.now() + timedelta(hours=2)
        assert window.is_today
        assert window.reference_date is None
        assert window.fallback_reason is None

    def test_explicit_date_and_time(self, filter_engine):
        window = filter_engine.compute_window(
            target_date="2024-10-26", target_time="08:00"
        )

        assert (window.base.day, window.base.hour, window.base.minute) == (26, 8, 0)
        assert window.base.tzinfo is not None
        assert not window.is_today
        assert window.reference_date == "2024-10-26"

    def test_time_only_stays_today(self, filter_engine):
        window = filter_engine.compute_window(target_time="09:00")

        assert window.base.hour == 9
        assert window.is_today
        assert window.reference_date is None

    def test_early_time_asked_late_at_night_is_tomorrow(self):
        engine = engine_at(2024, 10, 25, 23, 30)

        window = engine.compute_window(target_time="01:00")

        assert (window.base.day, window.base.hour) == (26, 1)
        assert not window.is_today
        assert window.reference_date is None

    def test_passed_time_same_day_stays_today(self):
        engine = engine_at(2024, 10, 25, 10, 0)

        window = engine.compute_window(target_time="08:00")

        assert (window.base.day, window.base.hour) == (25, 8)

    def test_date_only_keeps_current_clock(self, filter_engine):
        window = filter_engine.compute_window(target_date="2024-10-28")

        assert (window.base.day, window.base.hour, window.base.minute) == (28, 7, 30)

    def test_invalid_date_falls_back_to_now(self, filter_engine, clock):
        window = filter_engine.compute_window(
            target_date="2024-02-30", target_time="08:00"
        )

        assert window.base == clock.now()
        assert window.is_today
        assert "Day out of range" in window.fallback_reason

    @pytest.mark.parametrize("requested, expected", [(3, 3), (0, 1), (100, 24)])
    def test_window_hours_clamped(self, filter_engine, clock, requested, expected):
        window = filter_engine.compute_window(
            SearchPreferences(time_window_hours=requested)
        )

        assert window.max_time - clock.now() == timedelta(hours=expected)


class TestAnchoring:
    def test_after_midnight_departure_moves_to_tomorrow(self):
        engine = engine_at(2024, 10, 25, 23, 0)
        window = engine.compute_window()

        assert engine.parse_train_time("00:10", window).day == 26
        assert engine.parse_train_time("23:30", window).day == 25

    def test_large_gap_moves_to_tomorrow(self):
        engine = engine_at(2024, 10, 25, 19, 30)
        window = engine.compute_window()

        assert engine.parse_train_time("01:00", window).day == 26
        assert engine.parse_train_time("05:00", window).day == 25

    def test_recently_departed_stays_today(self, filter_engine):
        window = filter_engine.compute_window()

        assert filter_engine.parse_train_time("07:00", window).day == 25

    def test_reference_date_wins(self, filter_engine):
        window = filter_engine.compute_window(target_date="2024-10-30")

        anchored = filter_engine.parse_train_time("00:10:30", window)

        assert (anchored.day, anchored.hour, anchored.minute, anchored.second) == (30, 0, 10, 30)

    def test_malformed_time_raises(self, filter_engine):
        with pytest.raises(ValueError):
            filter_engine.parse_train_time("25:00", filter_engine.compute_window())


class TestFilter:
    def test_window_bounds(self, filter_engine):
        results = [result("a", "06:20"), result("b", "06:40"), result("c", "09:40")]

        assert numbers(filter_engine.filter(results, max_results=5)) == []

    def test_departed_trains_dropped_and_status_annotated(self, filter_engine):
        results = [result("gone", "07:10"), result("soon", "07:40"), result("later", "08:30")]

        filtered = filter_engine.filter(results)

        assert numbers(filtered) == ["soon", "later"]
        soon, later = filtered
        assert soon.minutes_until_departure == 10
        assert soon.is_imminent is True
        assert soon.has_departed is False
        assert later.minutes_until_departure == 60
        assert later.is_imminent is False

    def test_delayed_train_is_kept(self, filter_engine):
        """A 07:25 train running ten minutes late has not left at 07:30."""
        delays = index_delays([LiveDelayEntry("late", 10, "delayed")])

        (train,) = filter_engine.filter([result("late", "07:25", arrival="08:25")], live_delays=delays)

        assert train.has_departed is False
        assert train.minutes_until_departure == 5
        assert train.is_imminent is True
        assert train.delay_minutes == 10
        assert train.adjusted_departure_time == "07:35"
        assert train.adjusted_arrival_time == "08:35"
        assert train.train_status == "delayed"

    def test_delay_without_minutes_sets_status_only(self, filter_engine):
        delays = {"x": LiveDelayEntry("x", None, "cancelled")}

        (train,) = filter_engine.filter([result("x", "08:00")], live_delays=delays)

        assert train.train_status == "cancelled"
        assert train.delay_minutes is None
        assert train.adjusted_departure_time is None

    def test_backfill_with_restricted_trains(self, filter_engine):
        """One eligible train is topped up with the earliest backups."""
        results = [
            result("P1", "08:30"),
            result("B4", "09:00", eligible=False),
            result("B1", "07:45", eligible=False),
            result("B3", "08:15", eligible=False),
            result("B2", "08:00", eligible=False),
        ]

        filtered = filter_engine.filter(results, max_results=3)

        assert numbers(filtered) == ["B1", "B2", "P1"]
        assert [r.is_backup_option for r in filtered] == [True, True, False]

    def test_no_backfill_when_primary_is_enough(self, filter_engine):
        results = [
            result("P1", "07:40"),
            result("P2", "08:00"),
            result("P3", "08:20"),
            result("B1", "07:35", eligible=False),
        ]

        assert numbers(filter_engine.filter(results)) == ["P1", "P2", "P3"]

    def test_include_all_types_skips_pass_filter(self, filter_engine):
        results = [result("P1", "08:30"), result("R1", "07:45", eligible=False)]
        prefs = SearchPreferences(include_all_train_types=True)

        filtered = filter_engine.filter(results, prefs)

        assert numbers(filtered) == ["R1", "P1"]
        assert not any(r.is_backup_option for r in filtered)

    def test_direct_only(self, filter_engine):
        results = [result("local", "07:45", stops=4), result("express", "08:00")]

        filtered = filter_engine.filter(results, SearchPreferences(direct_only=True))

        assert numbers(filtered) == ["express"]

    def test_train_type_filter_includes_restricted(self, filter_engine):
        results = [
            result("2", "08:00", eligible=False, train_type="普悠瑪號"),
            result("1121", "08:10"),
        ]

        filtered = filter_engine.filter(results, SearchPreferences(train_type="普悠瑪"))

        assert numbers(filtered) == ["2"]
        assert filtered[0].is_backup_option is False

    def test_train_type_excludes_longer_type_name(self, filter_engine):
        results = [
            result("3171", "08:00", train_type="區間快車"),
            result("1121", "08:10", train_type="區間車"),
        ]

        filtered = filter_engine.filter(results, SearchPreferences(train_type="區間"))

        assert numbers(filtered) == ["1121"]

    def test_time_only_after_midnight_late_at_night(self):
        """Asking for 01:00 at 23:30 means tonight's after-midnight trains."""
        engine = engine_at(2024, 10, 25, 23, 30)
        results = [result("1", "00:50"), result("2", "01:10"), result("3", "01:40")]

        assert numbers(engine.filter(results, target_time="01:00")) == ["1", "2", "3"]

    def test_midnight_ordering(self):
        engine = engine_at(2024, 10, 25, 23, 0)
        results = [result("c", "00:10"), result("a", "23:30"), result("b", "23:50")]

        assert numbers(engine.filter(results)) == ["a", "b", "c"]

    def test_same_departure_ordered_by_train_number(self, filter_engine):
        results = [result("152", "08:00"), result("1121", "08:00")]

        assert numbers(filter_engine.filter(results)) == ["1121", "152"]

    def test_other_day_has_no_status(self, filter_engine):
        results = [result("152", "07:10"), result("154", "08:30")]

        filtered = filter_engine.filter(results, target_date="2024-10-26")

        assert numbers(filtered) == ["152", "154"]
        assert all(r.minutes_until_departure is None for r in filtered)
        assert all(r.has_departed is None for r in filtered)

    def test_malformed_result_dropped(self, filter_engine):
        results = [result("bad", "8 am"), result("ok", "08:00")]

        assert numbers(filter_engine.filter(results)) == ["ok"]

    def test_max_results_zero(self, filter_engine):
        results = [result("P1", "08:00"), result("B1", "08:10", eligible=False)]

        assert filter_engine.filter(results, max_results=0) == []

    def test_empty_input(self, filter_engine):
        assert filter_engine.filter([]) == []


@pytest.mark.parametrize(
    "requested, train_type, expected",
    [
        ("區間", "區間車", True),
        ("區間", "區間快車", False),
        ("區間快", "區間快車", True),
        ("普悠瑪", "普悠瑪號", True),
        ("普悠瑪", "自強(普悠瑪)", True),
        ("自強", "自強(普悠瑪)", True),
        ("自強", "莒光號", False),
    ],
)
def test_matches_train_type(requested, train_type, expected):
    assert matches_train_type(requested, train_type) is expected
