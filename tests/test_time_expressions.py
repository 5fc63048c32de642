import pytest

from tra_query.nlp.time_expressions import (
    apply_period,
    chinese_to_int,
    extract_time,
    strip_time_expressions,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("台北到台中明天早上八點", "08:00"),
        ("下午兩點半", "14:30"),
        ("晚上十點", "22:00"),
        ("早上八點零五分", "08:05"),
        ("九點一刻", "09:15"),
        ("中午一點", "13:00"),
        ("凌晨十二點", "00:00"),
        ("深夜十一點", "23:00"),
        ("下午3:15", "15:15"),
        ("10:30", "10:30"),
        ("10：30", "10:30"),
        ("8am", "08:00"),
        ("8:30 pm", "20:30"),
        ("12am", "00:00"),
        ("noon", "12:00"),
        ("中午", "12:00"),
        ("下午", "14:00"),
    ],
)
def test_extract_time(text, expected):
    assert extract_time(text) == expected


@pytest.mark.parametrize("text", ["", "台北到台中", "25:00", "13pm", "接下來3小時"])
def test_extract_time_returns_none_without_valid_time(text):
    assert extract_time(text) is None


@pytest.mark.parametrize(
    "token, expected",
    [
        ("二十三", 23),
        ("十", 10),
        ("十五", 15),
        ("兩", 2),
        ("零五", 5),
        ("12", 12),
        ("", None),
        ("十十", None),
    ],
)
def test_chinese_to_int(token, expected):
    assert chinese_to_int(token) == expected


def test_apply_period_keeps_24_hour_values():
    assert apply_period(15, "下午") == 15
    assert apply_period(3, "下午") == 15
    assert apply_period(9, None) == 9


def test_strip_time_expressions_leaves_station_name():
    assert strip_time_expressions("台中早上八點").strip() == "台中"
    assert strip_time_expressions("Taichung 8:30 pm").strip() == "Taichung"
