from datetime import date

from tra_query.dates import (
    explicit_date,
    next_month_day,
    next_weekday,
    normalize_date_en,
    normalize_dates_en,
    offset_date,
)

FRIDAY = date(2024, 10, 25)


def test_offset_date_crosses_month_end():
    assert offset_date(date(2024, 10, 31), 1) == date(2024, 11, 1)


def test_next_weekday_is_strictly_after_today():
    assert next_weekday(FRIDAY, 0) == date(2024, 10, 28)
    assert next_weekday(FRIDAY, 4) == date(2024, 11, 1)
    assert next_weekday(FRIDAY, 5) == date(2024, 10, 26)


def test_next_weekday_next_week_uses_following_monday_week():
    assert next_weekday(FRIDAY, 2, next_week=True) == date(2024, 10, 30)
    assert next_weekday(FRIDAY, 4, next_week=True) == date(2024, 11, 1)
    assert next_weekday(date(2024, 10, 21), 0, next_week=True) == date(2024, 10, 28)


def test_next_month_day_rolls_into_next_year_when_passed():
    assert next_month_day(FRIDAY, 10, 20) == date(2025, 10, 20)
    assert next_month_day(FRIDAY, 10, 25) == date(2024, 10, 25)
    assert next_month_day(FRIDAY, 12, 31) == date(2024, 12, 31)


def test_next_month_day_rejects_impossible_days():
    assert next_month_day(FRIDAY, 2, 30) is None
    # 2025 is not a leap year
    assert next_month_day(FRIDAY, 2, 29) is None
    assert next_month_day(FRIDAY, 13, 1) is None


def test_explicit_date():
    assert explicit_date(2024, 2, 29) == date(2024, 2, 29)
    assert explicit_date(2023, 2, 29) is None


def test_normalize_date_en_prefers_future():
    assert normalize_date_en("Oct 30", FRIDAY) == date(2024, 10, 30)


def test_normalize_dates_en_dedupes_in_order():
    assert normalize_dates_en(["Oct 30", "October 30", "not a date"], FRIDAY) == [
        "2024-10-30"
    ]
