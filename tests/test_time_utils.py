import pytest

from tra_query.timetable.time_utils import (
    add_minutes,
    format_duration,
    is_clock,
    parse_clock,
    to_minutes,
    travel_minutes,
)


@pytest.mark.parametrize(
    "value, delta, expected",
    [
        ("23:45", 30, "00:15"),
        ("00:15", -30, "23:45"),
        ("23:50", 20, "00:10"),
        ("00:10", -20, "23:50"),
        ("08:00", 0, "08:00"),
        ("08:00", 1440, "08:00"),
        ("08:00", -2 * 1440 - 30, "07:30"),
        ("23:59:59", 1, "00:00:59"),
        ("7:05", 5, "07:10"),
    ],
)
def test_add_minutes(value, delta, expected):
    assert add_minutes(value, delta) == expected


@pytest.mark.parametrize("d1, d2", [(100, 200), (-90, 45), (3000, -4500), (-1441, -1)])
def test_add_minutes_is_associative(d1, d2):
    assert add_minutes(add_minutes("22:15", d1), d2) == add_minutes("22:15", d1 + d2)


@pytest.mark.parametrize("value", ["", "24:00", "12:60", "12:00:60", "noon", "12"])
def test_invalid_clock(value):
    assert not is_clock(value)
    with pytest.raises(ValueError):
        add_minutes(value, 5)


def test_parse_clock_seconds_optional():
    assert parse_clock("07:10") == (7, 10, None)
    assert parse_clock("07:10:30") == (7, 10, 30)


def test_travel_minutes_over_midnight():
    assert travel_minutes("08:00", "09:38") == 98
    assert travel_minutes("23:30", "01:10") == 100
    assert to_minutes("01:10:59") == 70


def test_format_duration():
    assert format_duration(45) == "45m"
    assert format_duration(65) == "1h05m"
    assert format_duration(-3) == "0m"
