import pytest

from tra_query.adapters.timetable import StaticTimetableSource
from tra_query.domain.errors import TimetableUnavailableError
from tra_query.domain.models import LiveDelayEntry, RawTimetableRow, StopTime

NORTHBOUND = RawTimetableRow(
    train_no="152",
    train_type_code="4",
    stops=(StopTime("1000", 1, "07:40", "07:40"), StopTime("3300", 2, "09:30", "09:30")),
)
EAST = RawTimetableRow(
    train_no="408",
    train_type_code="1",
    stops=(StopTime("1000", 1, "07:00", "07:00"), StopTime("7000", 2, "09:10", "09:10")),
)


@pytest.fixture
def source():
    return StaticTimetableSource(
        timetables={"2024-10-26": [EAST], "*": [NORTHBOUND, EAST]},
        live_delays={"1000": [LiveDelayEntry("152", 3)]},
    )


def test_rows_filtered_by_route(source):
    assert source.fetch_timetable("1000", "3300", "2024-10-25") == [NORTHBOUND]


def test_dated_rows_take_precedence(source):
    assert source.fetch_timetable("1000", "3300", "2024-10-26") == []
    assert source.fetch_timetable("1000", "7000", "2024-10-26") == [EAST]


def test_unknown_date_without_default():
    source = StaticTimetableSource(timetables={"2024-10-26": [EAST]})

    with pytest.raises(TimetableUnavailableError) as exc_info:
        source.fetch_timetable("1000", "7000", "2024-10-27")
    assert exc_info.value.origin_id == "1000"
    assert exc_info.value.date == "2024-10-27"


def test_live_delays(source):
    assert source.fetch_live_delays("1000") == [LiveDelayEntry("152", 3)]
    assert source.fetch_live_delays("3300") == []
